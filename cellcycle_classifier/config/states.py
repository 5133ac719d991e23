"""Cell-cycle state configuration.

This module is the single source of truth for the state vocabulary that
surrounds the classifier: the display order of the full and collapsed
label sets, the many-to-one collapse map and the standard state colours.

Example
-------
>>> from cellcycle_classifier.config import get_state_config
>>> config = get_state_config()
>>> config.collapse("Late G1")
'G0/G1'
>>> config.levels(include_g0=False)
['G0/G1', 'S', 'S/G2', 'G2/M', 'M/Early G1', 'Unknown']
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import yaml

UNKNOWN_LABEL = "Unknown"

DEFAULT_FULL_ORDER: Tuple[str, ...] = (
    "Neural G0",
    "G1",
    "Late G1",
    "S",
    "S/G2",
    "G2/M",
    "M/Early G1",
)

DEFAULT_COLLAPSE_MEMBERS: Tuple[str, ...] = ("Neural G0", "G1", "Late G1")
DEFAULT_MERGED_LABEL = "G0/G1"

DEFAULT_STATE_COLORS: Dict[str, str] = {
    "Neural G0": "#d9a428",
    "G1": "#f37f73",
    "Late G1": "#1fb1a9",
    "S": "#8571b2",
    "S/G2": "#db7092",
    "G2/M": "#3db270",
    "M/Early G1": "#6d90ca",
    "G0/G1": "#ff6600",
    "Unknown": "#cccccc",
}


@dataclass(frozen=True, eq=False)
class StateConfig:
    """Label vocabulary for one trained classifier.

    Attributes
    ----------
    full_order : Tuple[str, ...]
        Display order of the uncollapsed states (excluding Unknown)
    collapse_members : Tuple[str, ...]
        States merged into ``merged_label`` when fine-grained quiescence
        calls are not requested
    merged_label : str
        Label replacing any of ``collapse_members``
    state_colors : Dict[str, str]
        Hex colours per state, including the merged label and Unknown
    """

    full_order: Tuple[str, ...] = DEFAULT_FULL_ORDER
    collapse_members: Tuple[str, ...] = DEFAULT_COLLAPSE_MEMBERS
    merged_label: str = DEFAULT_MERGED_LABEL
    state_colors: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_STATE_COLORS))

    def __post_init__(self) -> None:
        if self.merged_label == UNKNOWN_LABEL:
            raise ValueError(f"Merged label cannot be '{UNKNOWN_LABEL}'")
        if self.merged_label in self.collapse_members:
            raise ValueError(
                f"Merged label '{self.merged_label}' must differ from the states it replaces"
            )
        if self.merged_label in self.full_order:
            raise ValueError(
                f"Merged label '{self.merged_label}' collides with a fine-grained state"
            )

    @property
    def collapsed_order(self) -> Tuple[str, ...]:
        """Display order once the collapse map is applied.

        The merged label takes the position of the first collapsed member.
        """
        order: List[str] = []
        for state in self.full_order:
            label = self.collapse(state)
            if label not in order:
                order.append(label)
        return tuple(order)

    def collapse(self, state: str) -> str:
        """Map a fine-grained state to its collapsed label."""
        if state in self.collapse_members:
            return self.merged_label
        return state

    def levels(
        self,
        include_g0: bool,
        class_labels: Optional[Sequence[str]] = None,
    ) -> List[str]:
        """Declared categories of a state assignment.

        Parameters
        ----------
        include_g0 : bool
            If True, the fine-grained view; otherwise the collapsed view
        class_labels : Sequence[str], optional
            Class labels of the classifier. Labels not covered by the
            configured order are appended in classifier order, and
            configured states the classifier cannot emit are dropped.

        Returns
        -------
        List[str]
            Ordered levels, always ending with Unknown
        """
        if class_labels is None:
            class_labels = self.full_order

        mapper = (lambda s: s) if include_g0 else self.collapse
        emitted = []
        for label in class_labels:
            mapped = mapper(label)
            if mapped not in emitted:
                emitted.append(mapped)

        order = self.full_order if include_g0 else self.collapsed_order
        levels = [s for s in order if s in emitted]
        levels.extend(s for s in emitted if s not in levels)
        levels.append(UNKNOWN_LABEL)
        return levels

    def get_state_color(self, state: str, default: str = "#808080") -> str:
        """Get the hex colour for a state."""
        return self.state_colors.get(state, default)

    def colors_for(self, levels: Iterable[str]) -> List[str]:
        """Colours aligned with ``levels``, in the same order."""
        return [self.get_state_color(level) for level in levels]

    @classmethod
    def from_yaml(cls, path: Path) -> "StateConfig":
        """Load a state configuration from YAML.

        Expected layout::

            states:
              order: [Neural G0, G1, ...]
              colors: {G1: "#f37f73", ...}
            collapse:
              members: [Neural G0, G1, Late G1]
              label: G0/G1

        Missing sections fall back to the defaults.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"State config not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        states = data.get("states", {})
        collapse = data.get("collapse", {})
        colors = dict(DEFAULT_STATE_COLORS)
        colors.update(states.get("colors", {}))

        return cls(
            full_order=tuple(states.get("order", DEFAULT_FULL_ORDER)),
            collapse_members=tuple(collapse.get("members", DEFAULT_COLLAPSE_MEMBERS)),
            merged_label=collapse.get("label", DEFAULT_MERGED_LABEL),
            state_colors=colors,
        )


def get_state_config(path: Optional[Path] = None) -> StateConfig:
    """Return the state configuration at ``path``, or the default one."""
    if path is None:
        return StateConfig()
    return StateConfig.from_yaml(path)
