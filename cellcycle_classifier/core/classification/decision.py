"""Cell-cycle state decision from class probabilities.

Every state call, whether it follows a fresh prediction or re-applies a
new threshold to stored probabilities, goes through ``decide_states``:

1. the arg-max class of each cell (first class wins on exact ties)
2. the collapse map applied to that label when fine-grained quiescence
   calls are not requested (Neural G0, G1 and Late G1 become G0/G1)
3. the confidence, i.e. the pre-collapse maximum probability
4. an override to Unknown when the confidence is below the threshold

Collapsing never changes which cells are called Unknown.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from ...config.states import UNKNOWN_LABEL, StateConfig
from .panel import ClassLabelSet

ROW_SUM_TOLERANCE = 1e-3


def probability_column(label: str) -> str:
    """Cell-metadata column holding the probability of ``label``.

    The label string is kept as-is except for "/", which h5ad storage
    does not allow in column names and which becomes "_".
    """
    return label.replace("/", "_")


def probability_columns(labels: ClassLabelSet) -> Dict[str, str]:
    """Label -> metadata column for every class, checked for collisions."""
    columns = {label: probability_column(label) for label in labels.labels}
    if len(set(columns.values())) != len(columns):
        raise ValueError(
            f"Class labels {list(labels.labels)} map to clashing metadata columns "
            f"{list(columns.values())}"
        )
    return columns


def validate_threshold(threshold: float) -> float:
    threshold = float(threshold)
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"Threshold must be within [0, 1], got {threshold}")
    return threshold


@dataclass(frozen=True, eq=False)
class ProbabilityTable:
    """Per-cell class probabilities (cells x class labels).

    Columns carry the exact class label strings, in label-set order.
    Each row is a probability distribution over the classes.
    """

    frame: pd.DataFrame
    labels: ClassLabelSet

    def __post_init__(self) -> None:
        frame = self.frame
        if list(frame.columns) != list(self.labels.labels):
            raise ValueError(
                f"Probability columns {list(frame.columns)} do not match "
                f"class labels {list(self.labels.labels)}"
            )
        if not frame.index.is_unique:
            raise ValueError("Probability table has duplicated cell identifiers")

        values = frame.to_numpy(dtype=float)
        if not np.isfinite(values).all():
            raise ValueError("Probability table contains non-finite values")
        if (values < 0).any():
            raise ValueError("Probability table contains negative values")
        if len(values):
            row_sums = values.sum(axis=1)
            bad = np.abs(row_sums - 1.0) > ROW_SUM_TOLERANCE
            if bad.any():
                raise ValueError(
                    f"{int(bad.sum())} probability rows do not sum to 1 "
                    f"(e.g. {row_sums[bad][0]:.4f})"
                )

        frame = frame.astype(float).copy()
        frame.index = frame.index.astype(str)
        object.__setattr__(self, "frame", frame)

    @property
    def cells(self) -> pd.Index:
        return self.frame.index

    @property
    def values(self) -> np.ndarray:
        return self.frame.to_numpy()

    def __len__(self) -> int:
        return len(self.frame)

    @classmethod
    def from_obs(cls, obs: pd.DataFrame, labels: ClassLabelSet) -> "ProbabilityTable":
        """Read previously attached probability columns back from cell metadata.

        Columns are looked up with ``probability_column``, the same naming
        used when they were attached.
        """
        columns = probability_columns(labels)
        missing = [col for col in columns.values() if col not in obs.columns]
        if missing:
            raise ValueError(
                f"Probability columns not found in cell metadata: {missing}. "
                "Run prediction first."
            )
        frame = obs.loc[:, list(columns.values())].astype(float)
        frame.columns = list(columns.keys())
        return cls(frame, labels)


@dataclass(frozen=True, eq=False)
class StateAssignment:
    """State call per cell with the probabilities it was derived from.

    Attributes:
        states: Categorical labels indexed by cell identifier
        probabilities: Source probability table
        threshold: Confidence threshold applied
        include_g0: Whether fine-grained quiescence calls were kept
    """

    states: pd.Series
    probabilities: ProbabilityTable
    threshold: float
    include_g0: bool
    confidence: Optional[pd.Series] = None

    @property
    def levels(self) -> List[str]:
        return list(self.states.cat.categories)

    def to_frame(self, label_col: str = "cell_cycle_state") -> pd.DataFrame:
        """Probability columns plus the state label column."""
        df = self.probabilities.frame.copy()
        df[label_col] = self.states
        return df

    def frequencies(self) -> pd.Series:
        """Fraction of cells per declared level, zero-count levels included."""
        counts = self.states.value_counts(sort=False).reindex(self.levels, fill_value=0)
        total = counts.sum()
        return counts / total if total else counts.astype(float)

    def counts(self) -> Dict[str, int]:
        return {k: int(v) for k, v in self.states.value_counts(sort=False).items()}


def decide_states(
    table: ProbabilityTable,
    threshold: float = 0.5,
    include_g0: bool = False,
    state_config: Optional[StateConfig] = None,
) -> StateAssignment:
    """Turn class probabilities into one state label per cell.

    Args:
        table: Per-cell class probabilities
        threshold: Minimum arg-max probability for a call to be kept
        include_g0: Keep Neural G0 / G1 / Late G1 calls instead of G0/G1
        state_config: State vocabulary (default configuration if None)

    Returns:
        StateAssignment with categories ordered for display, ending
        with Unknown
    """
    threshold = validate_threshold(threshold)
    if state_config is None:
        state_config = StateConfig()

    labels = np.asarray(table.labels.labels, dtype=object)
    values = table.values
    levels = state_config.levels(include_g0, table.labels.labels)

    if len(values):
        argmax = values.argmax(axis=1)
        confidence = values[np.arange(len(values)), argmax]
        called = labels[argmax]
        if not include_g0:
            called = np.array([state_config.collapse(s) for s in called], dtype=object)
        called = np.where(confidence < threshold, UNKNOWN_LABEL, called)
    else:
        confidence = np.empty(0, dtype=float)
        called = np.empty(0, dtype=object)

    states = pd.Series(
        pd.Categorical(called, categories=levels),
        index=table.cells,
        name="state",
    )
    return StateAssignment(
        states=states,
        probabilities=table,
        threshold=threshold,
        include_g0=include_g0,
        confidence=pd.Series(confidence, index=table.cells, name="confidence"),
    )
