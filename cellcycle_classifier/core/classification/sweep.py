"""Threshold sweep over stored class probabilities.

Re-decides states at a family of thresholds while holding the
probability table fixed, and reports the fraction of cells per state at
each threshold. The threshold 0 entry is the baseline distribution before
any call is overridden to Unknown.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import pandas as pd

from ...config.states import UNKNOWN_LABEL, StateConfig
from .decision import ProbabilityTable, decide_states, validate_threshold

DEFAULT_SWEEP_THRESHOLDS = (0.0, 0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9)


def threshold_sweep(
    table: ProbabilityTable,
    thresholds: Sequence[float] = DEFAULT_SWEEP_THRESHOLDS,
    include_g0: bool = False,
    state_config: Optional[StateConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> pd.DataFrame:
    """State frequencies across a range of thresholds.

    Args:
        table: Per-cell class probabilities
        thresholds: Thresholds to evaluate, in output order
        include_g0: Fine-grained view if True, collapsed view otherwise
        state_config: State vocabulary (default configuration if None)
        logger: Optional logger instance

    Returns:
        Long-form DataFrame with columns ``state``, ``threshold`` and
        ``frequency``; one row per (declared state, threshold), states
        with no cells included at frequency 0.

    Raises:
        ValueError: If the table is empty or a threshold is out of range
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    if len(table) == 0:
        raise ValueError("Cannot sweep thresholds over an empty probability table")
    thresholds = [validate_threshold(t) for t in thresholds]
    if not thresholds:
        raise ValueError("No thresholds given")

    frames: List[pd.DataFrame] = []
    for threshold in thresholds:
        assignment = decide_states(
            table,
            threshold=threshold,
            include_g0=include_g0,
            state_config=state_config,
        )
        freq = assignment.frequencies()
        frames.append(
            pd.DataFrame({
                "state": freq.index.astype(str),
                "threshold": threshold,
                "frequency": freq.to_numpy(dtype=float),
            })
        )
        logger.debug(
            "  threshold=%.2f: %.1f%% Unknown",
            threshold,
            100.0 * float(freq.get(UNKNOWN_LABEL, 0.0)),
        )

    result = pd.concat(frames, ignore_index=True)
    result["state"] = pd.Categorical(result["state"], categories=assignment.levels)
    return result
