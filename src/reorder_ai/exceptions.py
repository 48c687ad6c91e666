"""
Reorder AI Exceptions
=====================

Every error the forecasting pipeline can raise. Each exception carries
the ``FailureReason`` the pipeline records when it moves to ``Failed``.
"""

from typing import Optional

from .models.inventory import FailureReason


class ReorderAIError(Exception):
    """Base class for all forecasting errors."""

    reason: Optional[FailureReason] = None

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message


class SourceUnavailable(ReorderAIError):
    """The inventory source could not deliver a batch."""

    reason = FailureReason.SOURCE_UNAVAILABLE


class InvalidRecord(ReorderAIError):
    """
    A fetched record is missing a field or holds an out-of-range value.

    The whole batch is rejected; ``errors`` lists every problem found.
    """

    reason = FailureReason.INVALID_RECORD

    def __init__(self, message: str = "", errors: Optional[list] = None):
        super().__init__(message)
        self.errors = list(errors or [])


class ModelNotReady(ReorderAIError):
    """Scoring was requested before the classifier was trained."""

    reason = FailureReason.MODEL_NOT_READY


class TrainingFailed(ReorderAIError):
    """The classifier could not be fitted."""

    reason = FailureReason.TRAINING_FAILED


class InferenceFailed(ReorderAIError):
    """Scoring failed after a successful fit, e.g. a malformed feature vector."""

    reason = FailureReason.INFERENCE_FAILED


class PipelineTransitionError(ReorderAIError):
    """Invalid state transition."""
