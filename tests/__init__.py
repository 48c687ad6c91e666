# Reorder AI Tests Package

"""
Test suite for the Reorder AI forecasting pipeline.

This package contains:
- Unit tests for metrics, validation, sources and the classifier
- State machine and end-to-end tests for the prediction pipeline

Run tests:
    pytest
"""
