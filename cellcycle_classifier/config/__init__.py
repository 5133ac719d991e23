"""Centralized configuration for cellcycle-classifier.

Holds the cell-cycle state vocabulary (display order, collapse map and
colours) shared by the decision step, the threshold sweep and the
metadata attachment.

Example
-------
>>> from cellcycle_classifier.config import get_state_config
>>> config = get_state_config()
>>> config.merged_label
'G0/G1'
"""

from .states import (
    DEFAULT_COLLAPSE_MEMBERS,
    DEFAULT_FULL_ORDER,
    DEFAULT_MERGED_LABEL,
    DEFAULT_STATE_COLORS,
    UNKNOWN_LABEL,
    StateConfig,
    get_state_config,
)

__all__ = [
    "DEFAULT_COLLAPSE_MEMBERS",
    "DEFAULT_FULL_ORDER",
    "DEFAULT_MERGED_LABEL",
    "DEFAULT_STATE_COLORS",
    "UNKNOWN_LABEL",
    "StateConfig",
    "get_state_config",
]
