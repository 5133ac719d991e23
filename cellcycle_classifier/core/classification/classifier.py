"""Classifier strategy and batch probability prediction.

The trained classifier is a black box mapping one panel-length vector to
one probability vector over the class label set. It is plugged in through
``BaseClassifier`` so that the pipeline can run against the frozen
network shipped with a model as well as against any stub of known
behaviour.

Prediction over many cells is vectorized per batch and can be spread
over a joblib worker pool for large datasets.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .alignment import AlignedFeatureMatrix
from .decision import ProbabilityTable
from .panel import ClassLabelSet


class ClassifierShapeError(ValueError):
    """Classifier input or output does not match the panel / label set."""


class BaseClassifier(ABC):
    """Pure function from a feature vector to class probabilities."""

    n_features: Optional[int] = None
    n_classes: Optional[int] = None

    @abstractmethod
    def classify(self, vector: np.ndarray) -> np.ndarray:
        """Class probabilities for one panel-ordered feature vector."""

    def classify_batch(self, matrix: np.ndarray) -> np.ndarray:
        """Class probabilities for each row of ``matrix`` (cells x features)."""
        return np.vstack([np.asarray(self.classify(row), dtype=float) for row in matrix])


class FunctionClassifier(BaseClassifier):
    """Adapter turning a plain callable into a classifier."""

    def __init__(
        self,
        fn: Callable[[np.ndarray], Sequence[float]],
        n_features: Optional[int] = None,
        n_classes: Optional[int] = None,
    ):
        self.fn = fn
        self.n_features = n_features
        self.n_classes = n_classes

    def classify(self, vector: np.ndarray) -> np.ndarray:
        return np.asarray(self.fn(vector), dtype=float)


def _softmax(logits: np.ndarray) -> np.ndarray:
    shifted = logits - logits.max(axis=-1, keepdims=True)
    exp = np.exp(shifted)
    return exp / exp.sum(axis=-1, keepdims=True)


class DenseNetworkClassifier(BaseClassifier):
    """Frozen feed-forward network: ReLU hidden layers, softmax output.

    Parameters
    ----------
    weights : Sequence[np.ndarray]
        Layer weight matrices, each (n_in, n_out)
    biases : Sequence[np.ndarray]
        Layer bias vectors, each (n_out,)

    Example
    -------
    >>> clf = DenseNetworkClassifier.from_npz("cellcycle_weights.npz")
    >>> probs = clf.classify_batch(aligned.values.T)
    """

    def __init__(self, weights: Sequence[np.ndarray], biases: Sequence[np.ndarray]):
        if not weights or len(weights) != len(biases):
            raise ValueError(
                f"Need one bias per weight matrix, got {len(weights)} weights "
                f"and {len(biases)} biases"
            )
        self.weights: List[np.ndarray] = [np.asarray(w, dtype=float) for w in weights]
        self.biases: List[np.ndarray] = [np.asarray(b, dtype=float) for b in biases]

        for i, (w, b) in enumerate(zip(self.weights, self.biases)):
            if w.ndim != 2 or b.shape != (w.shape[1],):
                raise ValueError(f"Layer {i}: weight {w.shape} incompatible with bias {b.shape}")
            if i > 0 and w.shape[0] != self.weights[i - 1].shape[1]:
                raise ValueError(
                    f"Layer {i}: expects {w.shape[0]} inputs, previous layer "
                    f"emits {self.weights[i - 1].shape[1]}"
                )

        self.n_features = self.weights[0].shape[0]
        self.n_classes = self.weights[-1].shape[1]

    @classmethod
    def from_npz(cls, path: Union[Path, str]) -> "DenseNetworkClassifier":
        """Load layers stored as ``W0, b0, W1, b1, ...`` in an npz archive."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Classifier weights not found: {path}")
        with np.load(path) as archive:
            n_layers = sum(1 for key in archive.files if key.startswith("W"))
            try:
                weights = [archive[f"W{i}"] for i in range(n_layers)]
                biases = [archive[f"b{i}"] for i in range(n_layers)]
            except KeyError as e:
                raise ValueError(f"Malformed weight archive {path}: missing {e}") from e
        return cls(weights, biases)

    def _forward(self, x: np.ndarray) -> np.ndarray:
        for w, b in zip(self.weights[:-1], self.biases[:-1]):
            x = np.maximum(x @ w + b, 0.0)
        return _softmax(x @ self.weights[-1] + self.biases[-1])

    def classify(self, vector: np.ndarray) -> np.ndarray:
        return self._forward(np.asarray(vector, dtype=float)[np.newaxis, :])[0]

    def classify_batch(self, matrix: np.ndarray) -> np.ndarray:
        return self._forward(np.asarray(matrix, dtype=float))


def _classify_chunk(
    classifier: BaseClassifier,
    chunk: np.ndarray,
    n_classes: int,
) -> np.ndarray:
    out = np.asarray(classifier.classify_batch(chunk), dtype=float)
    if out.ndim != 2 or out.shape != (chunk.shape[0], n_classes):
        raise ClassifierShapeError(
            f"Classifier returned shape {out.shape} for {chunk.shape[0]} cells; "
            f"expected ({chunk.shape[0]}, {n_classes})"
        )
    return out


def predict_probabilities(
    classifier: BaseClassifier,
    aligned: AlignedFeatureMatrix,
    labels: ClassLabelSet,
    n_workers: int = 1,
    batch_size: int = 1024,
    logger: Optional[logging.Logger] = None,
) -> ProbabilityTable:
    """Run the classifier on every cell of an aligned feature matrix.

    Args:
        classifier: Classifier strategy
        aligned: Panel x cells feature matrix
        labels: Class label set giving the output column order
        n_workers: Parallel workers (1 = sequential)
        batch_size: Cells per classifier batch
        logger: Optional logger instance

    Returns:
        ProbabilityTable indexed by cell

    Raises:
        ClassifierShapeError: If the classifier's declared or returned
            dimensions disagree with the panel or the label set
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    n_genes, n_cells = aligned.shape
    if classifier.n_features is not None and classifier.n_features != n_genes:
        raise ClassifierShapeError(
            f"Classifier expects {classifier.n_features} features, panel has {n_genes}"
        )
    if classifier.n_classes is not None and classifier.n_classes != len(labels):
        raise ClassifierShapeError(
            f"Classifier emits {classifier.n_classes} classes, label set has {len(labels)}"
        )
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    cells_by_features = aligned.values.T
    chunks = [
        cells_by_features[start:start + batch_size]
        for start in range(0, n_cells, batch_size)
    ]

    start_time = time.time()
    if n_workers > 1 and len(chunks) > 1:
        logger.info(
            "  Predicting %d cells in %d batches with %d workers",
            n_cells,
            len(chunks),
            n_workers,
        )
        results = Parallel(n_jobs=n_workers, backend="loky")(
            delayed(_classify_chunk)(classifier, chunk, len(labels)) for chunk in chunks
        )
    else:
        results = [_classify_chunk(classifier, chunk, len(labels)) for chunk in chunks]

    probabilities = np.vstack(results) if results else np.empty((0, len(labels)))
    logger.debug("  Classifier finished in %.2fs", time.time() - start_time)

    frame = pd.DataFrame(
        probabilities,
        index=pd.Index(aligned.cells, name="cell"),
        columns=list(labels.labels),
    )
    return ProbabilityTable(frame, labels)
