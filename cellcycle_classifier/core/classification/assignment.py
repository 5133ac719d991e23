"""Cell-level state attachment.

This module writes a StateAssignment into ``adata.obs``, matching rows on
cell identifier, and registers the standard state colours so that scanpy
plots of the label column use them.
"""

from __future__ import annotations

import logging
from typing import Optional

import anndata as ad
import pandas as pd

from ...config.states import StateConfig
from .decision import StateAssignment, probability_columns


def annotate_obs(
    adata: ad.AnnData,
    assignment: StateAssignment,
    label_col: str,
    include_probabilities: bool = True,
    state_config: Optional[StateConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Attach state calls (and optionally probabilities) to ``adata.obs``.

    Creates or replaces in adata.obs:
    - one float column per class label (see ``probability_column``)
    - {label_col}: categorical state label

    Also sets ``adata.uns[f"{label_col}_colors"]`` aligned with the
    label categories.

    Args:
        adata: AnnData object to modify in place
        assignment: State calls indexed by cell identifier
        label_col: Name for the output label column
        include_probabilities: Whether to (re)write the probability columns
        state_config: State vocabulary providing the colours
        logger: Optional logger instance

    Raises:
        ValueError: If some cells of ``adata`` have no state call
    """
    if logger is None:
        logger = logging.getLogger(__name__)
    if state_config is None:
        state_config = StateConfig()

    obs_names = adata.obs_names.astype(str)
    states = assignment.states.reindex(obs_names)
    if states.isna().any():
        n_missing = int(states.isna().sum())
        raise ValueError(
            f"{n_missing} cells in AnnData have no state call; "
            "the assignment was computed on a different set of cells"
        )

    if include_probabilities:
        probs = assignment.probabilities.frame.reindex(obs_names)
        columns = probability_columns(assignment.probabilities.labels)
        for label, column in columns.items():
            adata.obs[column] = probs[label].to_numpy()

    adata.obs[label_col] = pd.Categorical(
        states.astype(str).to_numpy(),
        categories=assignment.levels,
    )
    adata.uns[f"{label_col}_colors"] = state_config.colors_for(assignment.levels)

    logger.info(
        "Annotated %d cells with %d distinct states",
        adata.n_obs,
        int((adata.obs[label_col].value_counts() > 0).sum()),
    )
