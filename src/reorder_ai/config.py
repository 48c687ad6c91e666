"""
Reorder AI - Configuration Module
==================================

Centralized configuration for the reorder forecasting pipeline.
Supports environment-based overrides (``REORDER_AI_*`` variables).

The reorder threshold and the safety-stock factor are business
constants (see ``utils.constants``) and deliberately not configurable.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .utils.constants import CLASSIFIER_CONFIG, SYNTHETIC_SOURCE_CONFIG, OUTPUT_CONFIG


@dataclass
class ClassifierConfig:
    """Configuration for the reorder classifier"""
    hidden_units: int = CLASSIFIER_CONFIG['hidden_units']
    epochs: int = CLASSIFIER_CONFIG['epochs']
    learning_rate: float = CLASSIFIER_CONFIG['learning_rate']

    # None draws fresh weights every run
    random_state: Optional[int] = None


@dataclass
class SourceConfig:
    """Configuration for the synthetic inventory feed"""
    batch_size: int = SYNTHETIC_SOURCE_CONFIG['batch_size']
    latency_seconds: float = SYNTHETIC_SOURCE_CONFIG['latency_seconds']
    seed: Optional[int] = None


@dataclass
class LoggingConfig:
    """Logging level and optional log file"""
    level: str = 'INFO'
    log_file: Optional[Path] = None


@dataclass
class Config:
    """
    Master configuration for Reorder AI

    Usage:
        config = Config()
        config.classifier.epochs = 200

        config = Config.from_env()
    """

    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    source: SourceConfig = field(default_factory=SourceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    output_path: Path = field(default_factory=lambda: Path.cwd() / OUTPUT_CONFIG['output_base_dir'])

    def __post_init__(self):
        """Convert string paths to Path objects and check numeric settings"""
        if isinstance(self.output_path, str):
            self.output_path = Path(self.output_path)
        if isinstance(self.logging.log_file, str):
            self.logging.log_file = Path(self.logging.log_file)

        if self.classifier.hidden_units < 1:
            raise ValueError("classifier.hidden_units must be >= 1")
        if self.classifier.epochs < 1:
            raise ValueError("classifier.epochs must be >= 1")
        if self.classifier.learning_rate <= 0:
            raise ValueError("classifier.learning_rate must be > 0")
        if self.source.batch_size < 0:
            raise ValueError("source.batch_size must be >= 0")
        if self.source.latency_seconds < 0:
            raise ValueError("source.latency_seconds must be >= 0")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Config':
        """
        Create config from ``REORDER_AI_*`` environment variables.

        Recognised variables: EPOCHS, HIDDEN_UNITS, LEARNING_RATE, SEED,
        BATCH_SIZE, SOURCE_LATENCY, LOG_LEVEL, LOG_FILE, OUTPUT_DIR.
        Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ

        def get(name, cast, default):
            value = env.get(f'REORDER_AI_{name}')
            if value is None or value == '':
                return default
            try:
                return cast(value)
            except ValueError as e:
                raise ValueError(f"Invalid REORDER_AI_{name}={value!r}: {e}") from e

        seed = get('SEED', int, None)
        classifier = ClassifierConfig(
            hidden_units=get('HIDDEN_UNITS', int, CLASSIFIER_CONFIG['hidden_units']),
            epochs=get('EPOCHS', int, CLASSIFIER_CONFIG['epochs']),
            learning_rate=get('LEARNING_RATE', float, CLASSIFIER_CONFIG['learning_rate']),
            random_state=seed,
        )
        source = SourceConfig(
            batch_size=get('BATCH_SIZE', int, SYNTHETIC_SOURCE_CONFIG['batch_size']),
            latency_seconds=get('SOURCE_LATENCY', float, SYNTHETIC_SOURCE_CONFIG['latency_seconds']),
            seed=seed,
        )
        logging_config = LoggingConfig(
            level=get('LOG_LEVEL', str, 'INFO').upper(),
            log_file=get('LOG_FILE', Path, None),
        )
        output_path = get('OUTPUT_DIR', Path, Path.cwd() / OUTPUT_CONFIG['output_base_dir'])

        return cls(
            classifier=classifier,
            source=source,
            logging=logging_config,
            output_path=output_path,
        )


# Default configuration instance
DEFAULT_CONFIG = Config()
