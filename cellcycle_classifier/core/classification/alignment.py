"""Alignment of expression data onto the classifier's marker panel.

The classifier reads a fixed-length vector in panel order. This module
maps an arbitrary genes x cells expression frame onto exactly that row
set: panel genes present in the data are copied verbatim, panel genes
absent from the data are imputed with the lowest finite value observed
among the present genes (reads as "absent/low" on the normalized scale),
and any remaining non-finite entry is floored to 0.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from .panel import MarkerPanel

DEFAULT_MIN_OVERLAP = 0.8


class LowMarkerOverlapWarning(UserWarning):
    """Fewer panel genes than the overlap threshold were found in the data."""


@dataclass(frozen=True)
class AlignmentReport:
    """Data-quality summary of one alignment.

    Attributes:
        n_total: Panel size
        n_present: Panel genes found in the expression data
        n_missing: Panel genes imputed
        missing_genes: Identifiers of the imputed genes, in panel order
        fill_value: Value written for imputed genes
        n_nonfinite: Entries floored to 0 after assembly
        min_overlap: Overlap fraction below which the data is flagged
    """

    n_total: int
    n_present: int
    n_missing: int
    missing_genes: Tuple[str, ...] = ()
    fill_value: float = 0.0
    n_nonfinite: int = 0
    min_overlap: float = DEFAULT_MIN_OVERLAP

    @property
    def overlap(self) -> float:
        return self.n_present / self.n_total if self.n_total else 0.0

    @property
    def low_overlap(self) -> bool:
        return self.overlap < self.min_overlap


@dataclass(frozen=True, eq=False)
class AlignedFeatureMatrix:
    """Fully populated panel x cells matrix in panel order.

    Attributes:
        values: Float matrix (n_panel_genes, n_cells)
        genes: Row identifiers, identical to the panel order
        cells: Column identifiers
        report: Alignment diagnostics
    """

    values: np.ndarray
    genes: Tuple[str, ...]
    cells: Tuple[str, ...]
    report: Optional[AlignmentReport] = None

    def __post_init__(self) -> None:
        values = np.asarray(self.values, dtype=float)
        if values.shape != (len(self.genes), len(self.cells)):
            raise ValueError(
                f"Aligned matrix shape {values.shape} does not match "
                f"{len(self.genes)} genes x {len(self.cells)} cells"
            )
        if not np.isfinite(values).all():
            raise ValueError("Aligned matrix contains non-finite values")
        values.setflags(write=False)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "_column_of", {cell: i for i, cell in enumerate(self.cells)})

    @property
    def shape(self) -> Tuple[int, int]:
        return self.values.shape

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            self.values,
            index=pd.Index(self.genes, name="gene"),
            columns=pd.Index(self.cells, name="cell"),
        )

    def cell_vector(self, cell: str) -> np.ndarray:
        """Classifier input vector for one cell."""
        if cell not in self._column_of:
            raise KeyError(f"Cell '{cell}' not in aligned matrix")
        return self.values[:, self._column_of[cell]]


def replace_nonfinite(values: np.ndarray) -> Tuple[np.ndarray, int]:
    """Copy of ``values`` with NaN and +/-Inf set to 0.

    Returns:
        Tuple of (cleaned matrix, number of entries replaced)
    """
    values = np.array(values, dtype=float, copy=True)
    mask = ~np.isfinite(values)
    values[mask] = 0.0
    return values, int(mask.sum())


def align_features(
    expression: pd.DataFrame,
    panel: MarkerPanel,
    min_overlap: float = DEFAULT_MIN_OVERLAP,
    logger: Optional[logging.Logger] = None,
) -> AlignedFeatureMatrix:
    """Map a genes x cells expression frame onto the marker panel.

    Args:
        expression: Normalized expression, genes (index) x cells (columns).
            Not modified.
        panel: Marker panel defining row order
        min_overlap: Fraction of the panel that must be present before a
            LowMarkerOverlapWarning is emitted
        logger: Optional logger instance

    Returns:
        AlignedFeatureMatrix with rows exactly equal to the panel

    Raises:
        ValueError: If the expression frame has no cells or has duplicated genes
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    if expression.shape[1] == 0:
        raise ValueError("Expression matrix has no cells")
    genes_in_data = expression.index.astype(str)
    if not genes_in_data.is_unique:
        dups = genes_in_data[genes_in_data.duplicated()].unique().tolist()
        raise ValueError(f"Expression matrix has duplicated genes: {dups[:10]}")

    present = set(genes_in_data)
    common = [g for g in panel.genes if g in present]
    missing = tuple(g for g in panel.genes if g not in present)

    logger.info("  Total possible marker genes for this classifier: %d", len(panel))
    logger.info("    Marker genes present in this dataset: %d", len(common))
    logger.info("    Missing marker genes in this dataset: %d", len(missing))

    frame = expression.copy()
    frame.index = genes_in_data
    common_values = frame.loc[common].to_numpy(dtype=float)

    finite = common_values[np.isfinite(common_values)]
    fill_value = float(finite.min()) if finite.size else 0.0

    n_cells = frame.shape[1]
    values = np.full((len(panel), n_cells), fill_value, dtype=float)
    if common:
        row_of = {g: i for i, g in enumerate(panel.genes)}
        rows = [row_of[g] for g in common]
        values[rows, :] = common_values

    values, n_nonfinite = replace_nonfinite(values)
    if n_nonfinite:
        logger.debug("    Replaced %d non-finite values with 0", n_nonfinite)

    report = AlignmentReport(
        n_total=len(panel),
        n_present=len(common),
        n_missing=len(missing),
        missing_genes=missing,
        fill_value=fill_value,
        n_nonfinite=n_nonfinite,
        min_overlap=min_overlap,
    )
    if report.low_overlap:
        message = (
            f"Marker gene overlap below {min_overlap:.0%} "
            f"({report.n_present}/{report.n_total}); consider re-running "
            "normalization on all genes"
        )
        logger.warning(message)
        warnings.warn(message, LowMarkerOverlapWarning, stacklevel=2)

    return AlignedFeatureMatrix(
        values=values,
        genes=panel.genes,
        cells=tuple(frame.columns.astype(str)),
        report=report,
    )
