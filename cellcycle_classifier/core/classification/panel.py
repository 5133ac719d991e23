"""Marker panel and class label loading.

This module loads the two resources that define a trained cell-cycle
classifier: the ordered class label set (the index-to-label mapping of
the classifier output) and the marker gene panel (the ordered input
features), keyed by species and gene identifier scheme. Both are
immutable once loaded and are passed explicitly into the pipeline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from ...config.states import UNKNOWN_LABEL

SPECIES = ("human", "mouse")
GENE_ID_SCHEMES = ("ensembl", "symbol")

# Output order of the reference classifier
DEFAULT_CLASS_LABELS: Tuple[str, ...] = (
    "G1",
    "G2/M",
    "Late G1",
    "M/Early G1",
    "Neural G0",
    "S",
    "S/G2",
)

DEFAULT_MODULES: Tuple[str, ...] = ("Late G1", "S", "S/G2", "G2/M", "M/Early G1")


def validate_species(species: str) -> str:
    if species not in SPECIES:
        raise ValueError(f"Unknown species '{species}'. Expected one of {list(SPECIES)}")
    return species


def validate_gene_id(gene_id: str) -> str:
    if gene_id not in GENE_ID_SCHEMES:
        raise ValueError(
            f"Unknown gene identifier scheme '{gene_id}'. "
            f"Expected one of {list(GENE_ID_SCHEMES)}"
        )
    return gene_id


def panel_column(species: str, gene_id: str) -> str:
    """Name of the gene table column holding identifiers for a species/scheme."""
    return f"{validate_species(species)}_{validate_gene_id(gene_id)}"


def _check_unique(values: Sequence[str], what: str) -> None:
    seen = set()
    duplicated = []
    for value in values:
        if value in seen:
            duplicated.append(value)
        seen.add(value)
    if duplicated:
        raise ValueError(f"Duplicated {what}: {sorted(set(duplicated))[:10]}")


@dataclass(frozen=True)
class ClassLabelSet:
    """Ordered class names matching the classifier output.

    Attributes:
        labels: Class names in classifier output order
    """

    labels: Tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", tuple(str(label) for label in self.labels))
        if not self.labels:
            raise ValueError("Class label set is empty")
        _check_unique(self.labels, "class labels")
        if UNKNOWN_LABEL in self.labels:
            raise ValueError(f"'{UNKNOWN_LABEL}' is reserved and cannot be a class label")

    def __len__(self) -> int:
        return len(self.labels)

    def __iter__(self):
        return iter(self.labels)

    def index(self, label: str) -> int:
        return self.labels.index(label)


@dataclass(frozen=True)
class MarkerPanel:
    """Ordered marker genes forming the classifier input vector.

    Attributes:
        genes: Gene identifiers in classifier input order
        species: Species the identifiers belong to
        gene_id: Identifier scheme (ensembl or symbol)
    """

    genes: Tuple[str, ...]
    species: str = "human"
    gene_id: str = "ensembl"

    def __post_init__(self) -> None:
        object.__setattr__(self, "genes", tuple(str(g) for g in self.genes))
        validate_species(self.species)
        validate_gene_id(self.gene_id)
        if not self.genes:
            raise ValueError("Marker panel is empty")
        _check_unique(self.genes, "marker genes")

    def __len__(self) -> int:
        return len(self.genes)

    def __iter__(self):
        return iter(self.genes)


def load_class_labels(path: Union[Path, str]) -> ClassLabelSet:
    """Load the class label set from a single-column, header-less file.

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Class label file not found: {path}")
    df = pd.read_csv(path, header=None, dtype=str, sep="\t")
    return ClassLabelSet(tuple(df.iloc[:, 0].str.strip()))


def _read_gene_table(path: Union[Path, str]) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Marker gene table not found: {path}")
    return pd.read_csv(path, index_col=0)


def load_marker_panel(
    path: Union[Path, str],
    species: str = "human",
    gene_id: str = "ensembl",
    logger: Optional[logging.Logger] = None,
) -> MarkerPanel:
    """Load the marker panel for one species and identifier scheme.

    The gene table has one row per marker gene and one identifier column
    per (species, scheme) pair, e.g. ``human_ensembl`` or ``mouse_symbol``.

    Args:
        path: Path to the marker gene table (CSV)
        species: 'human' or 'mouse'
        gene_id: 'ensembl' or 'symbol'
        logger: Optional logger instance

    Returns:
        MarkerPanel in table row order

    Raises:
        FileNotFoundError: If the table doesn't exist
        ValueError: If the identifier column is missing or incomplete
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    column = panel_column(species, gene_id)
    table = _read_gene_table(path)
    if column not in table.columns:
        raise ValueError(
            f"Column '{column}' not found in marker gene table {path}. "
            f"Available: {list(table.columns)}"
        )

    ids = table[column]
    if ids.isna().any():
        raise ValueError(
            f"Marker gene table column '{column}' has {int(ids.isna().sum())} empty entries"
        )

    panel = MarkerPanel(tuple(ids.astype(str)), species=species, gene_id=gene_id)
    logger.info("Loaded marker panel: %d genes (%s)", len(panel), column)
    return panel


def load_gene_modules(
    path: Union[Path, str],
    species: str = "human",
    gene_id: str = "ensembl",
    modules: Iterable[str] = DEFAULT_MODULES,
) -> Dict[str, Tuple[str, ...]]:
    """Load per-state gene modules from the membership columns of the gene table.

    Module columns hold 0/1 (or boolean) membership flags. Column names
    are matched exactly.

    Returns:
        Dict mapping module name -> gene identifiers
    """
    column = panel_column(species, gene_id)
    table = _read_gene_table(path)

    result: Dict[str, Tuple[str, ...]] = {}
    missing: List[str] = []
    for module in modules:
        if module not in table.columns:
            missing.append(module)
            continue
        members = table[table[module].fillna(0).astype(int) == 1]
        result[module] = tuple(members[column].dropna().astype(str))

    if missing:
        raise ValueError(
            f"Module columns not found in marker gene table: {missing}. "
            f"Available: {list(table.columns)}"
        )
    return result
