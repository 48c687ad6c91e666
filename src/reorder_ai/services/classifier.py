"""
Reorder Classifier Service
==========================
Binary "needs reorder" classifier over [stock, avgSales, leadTime].

Model:
- Feed-forward network: one hidden layer of 12 ReLU units, one logistic
  output unit (scikit-learn ``MLPClassifier``)
- Adam optimiser on binary cross-entropy (log-loss), no L2 penalty
- Fixed number of passes over the seed set, reshuffled every pass,
  no early stopping

Design Decisions:
1. Retrain from scratch on every call to ``train()``; no weights are
   cached between runs
2. Feature and label matrices live in a ``BufferScope`` that is released
   when the stage exits, on success and on failure
3. The decision threshold is not applied here; callers turn scores into
   actions

Usage:
    classifier = ReorderClassifier()
    classifier.train()
    scores = classifier.predict([[5, 20, 10], [200, 10, 7]])
"""

import warnings
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np
from sklearn.exceptions import ConvergenceWarning
from sklearn.neural_network import MLPClassifier

from ..config import ClassifierConfig
from ..exceptions import InferenceFailed, ModelNotReady, TrainingFailed
from ..models.inventory import TrainingSummary
from ..utils.constants import CLASSIFIER_CONFIG, FEATURE_NAMES, TRAINING_EXAMPLES
from ..utils.logger import get_logger

logger = get_logger(__name__)

N_FEATURES = len(FEATURE_NAMES)


class BufferScope:
    """
    Tracks numeric buffers allocated for one training or scoring stage.

    ``release()`` drops every reference the scope holds so the arrays can
    be reclaimed once the caller has extracted plain-Python results.
    """

    def __init__(self, owner: Optional['ReorderClassifier'] = None):
        self._owner = owner
        self._buffers: List[np.ndarray] = []
        self.released = False

    def allocate(self, data, dtype=np.float64) -> np.ndarray:
        array = np.array(data, dtype=dtype)
        self._buffers.append(array)
        if self._owner is not None:
            self._owner._open_buffers += 1
        return array

    def release(self) -> None:
        if self._owner is not None:
            self._owner._open_buffers -= len(self._buffers)
        self._buffers.clear()
        self.released = True

    def __len__(self) -> int:
        return len(self._buffers)


class ReorderClassifier:
    """
    Trains on the fixed seed set and scores feature vectors.

    Attributes
    ----------
    config : ClassifierConfig
        Network size, epochs, learning rate and seed
    examples : tuple
        ``((stock, avg_sales, lead_time), label)`` pairs to fit on
    """

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        examples: Sequence[Tuple[Sequence[int], int]] = TRAINING_EXAMPLES
    ):
        self.config = config or ClassifierConfig()
        self.examples = tuple(examples)
        self._model: Optional[MLPClassifier] = None
        self._positive_column: Optional[int] = None
        self._open_buffers = 0
        self.last_summary: Optional[TrainingSummary] = None

    @property
    def is_trained(self) -> bool:
        return self._model is not None

    @property
    def open_buffers(self) -> int:
        """Number of numeric buffers not yet released."""
        return self._open_buffers

    @contextmanager
    def buffer_scope(self) -> Iterator[BufferScope]:
        scope = BufferScope(owner=self)
        try:
            yield scope
        finally:
            scope.release()

    def _build_model(self) -> MLPClassifier:
        """
        Fresh, untrained network.

        ``n_iter_no_change`` equal to the epoch count with ``tol=0``
        keeps scikit-learn's convergence check from ending the fit early.
        """
        epochs = self.config.epochs
        return MLPClassifier(
            hidden_layer_sizes=(self.config.hidden_units,),
            activation=CLASSIFIER_CONFIG['activation'],
            solver=CLASSIFIER_CONFIG['solver'],
            learning_rate_init=self.config.learning_rate,
            alpha=0.0,
            max_iter=epochs,
            shuffle=True,
            early_stopping=False,
            tol=0.0,
            n_iter_no_change=epochs,
            random_state=self.config.random_state,
        )

    def train(self) -> TrainingSummary:
        """
        Fit a new network on the seed examples.

        Any previously trained model is discarded first, so a failed fit
        leaves the classifier not ready.

        Returns
        -------
        TrainingSummary
            Epochs run, final loss and accuracy on the seed set

        Raises
        ------
        TrainingFailed
            If the examples are unusable or the fit raises
        """
        self._model = None
        self._positive_column = None

        if not self.examples:
            raise TrainingFailed("No training examples available")

        with self.buffer_scope() as scope:
            try:
                X = scope.allocate([features for features, _ in self.examples])
                y = scope.allocate([label for _, label in self.examples], dtype=np.int64)
            except (TypeError, ValueError) as e:
                raise TrainingFailed(f"Malformed training examples: {e}") from e

            if X.ndim != 2 or X.shape[1] != N_FEATURES:
                raise TrainingFailed(
                    f"Training examples must have {N_FEATURES} features, got shape {X.shape}"
                )
            if set(np.unique(y).tolist()) != {0, 1}:
                raise TrainingFailed("Training labels must contain both classes 0 and 1")

            model = self._build_model()
            try:
                with warnings.catch_warnings():
                    # Running every epoch is expected, not a convergence failure
                    warnings.simplefilter('ignore', category=ConvergenceWarning)
                    model.fit(X, y)
                accuracy = float(model.score(X, y))
            except Exception as e:
                raise TrainingFailed(f"Classifier fit failed: {e}") from e

            summary = TrainingSummary(
                epochs=int(model.n_iter_),
                final_loss=float(model.loss_),
                accuracy=accuracy,
                n_examples=int(X.shape[0]),
            )

        self._model = model
        self._positive_column = int(np.flatnonzero(model.classes_ == 1)[0])
        self.last_summary = summary

        logger.info(
            f"Classifier trained: {summary.epochs} epochs, "
            f"loss={summary.final_loss:.4f}, accuracy={summary.accuracy:.0%}"
        )
        return summary

    def predict(self, vectors: Sequence[Sequence[float]]) -> List[float]:
        """
        Score feature vectors.

        Parameters
        ----------
        vectors : sequence of [stock, avgSales, leadTime]
            Vectors to score

        Returns
        -------
        List[float]
            One probability in [0, 1] per vector, in input order

        Raises
        ------
        ModelNotReady
            If called before a successful ``train()``
        InferenceFailed
            If a vector is malformed or scoring raises
        """
        if self._model is None:
            raise ModelNotReady("Classifier must be trained before predicting. Call train() first.")

        vectors = list(vectors)
        if not vectors:
            return []

        with self.buffer_scope() as scope:
            try:
                X = scope.allocate(vectors)
            except (TypeError, ValueError) as e:
                raise InferenceFailed(f"Malformed feature vectors: {e}") from e

            if X.ndim != 2 or X.shape[1] != N_FEATURES:
                raise InferenceFailed(
                    f"Feature vectors must have {N_FEATURES} values, got shape {X.shape}"
                )
            if not np.all(np.isfinite(X)):
                raise InferenceFailed("Feature vectors contain non-finite values")

            try:
                proba = self._model.predict_proba(X)
            except Exception as e:
                raise InferenceFailed(f"Scoring failed: {e}") from e

            scores = scope.allocate(np.clip(proba[:, self._positive_column], 0.0, 1.0))
            result = scores.tolist()

        logger.debug(f"Scored {len(result)} feature vectors")
        return result
