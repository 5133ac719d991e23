"""Cell-cycle classification engine.

This module provides the CellCycleEngine class that orchestrates the
prediction pipeline: normalization, panel alignment, classifier
invocation, state decision and attachment to the cell metadata. It also
provides the threshold-adjustment entry point, which re-decides states
from stored probabilities without invoking the classifier again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Sequence

import anndata as ad
import pandas as pd

from ...config.states import UNKNOWN_LABEL, StateConfig
from .alignment import AlignedFeatureMatrix, align_features
from .assignment import annotate_obs
from .classifier import BaseClassifier, predict_probabilities
from .config import CellCycleParams
from .decision import ProbabilityTable, StateAssignment, decide_states
from .normalization import expression_frame, normalize_residuals, scale_genes
from .panel import ClassLabelSet, MarkerPanel
from .sweep import DEFAULT_SWEEP_THRESHOLDS, threshold_sweep

UNS_KEY = "cell_cycle"


@dataclass
class CellCycleResult:
    """Result from the prediction pipeline.

    Attributes:
        adata: AnnData with probability and state columns added to obs
            (None when classifying a bare expression frame)
        aligned: Panel-aligned feature matrix fed to the classifier
        probabilities: Per-cell class probabilities
        assignment: Per-cell state calls
    """

    adata: Optional[ad.AnnData]
    aligned: AlignedFeatureMatrix
    probabilities: ProbabilityTable
    assignment: StateAssignment

    def summary(self) -> Dict[str, Any]:
        """YAML-safe summary of the run."""
        report = self.aligned.report
        counts = self.assignment.counts()
        return {
            "n_cells": len(self.probabilities),
            "threshold": float(self.assignment.threshold),
            "include_g0": bool(self.assignment.include_g0),
            "classes": list(self.probabilities.labels.labels),
            "panel": {
                "n_total": int(report.n_total),
                "n_present": int(report.n_present),
                "n_missing": int(report.n_missing),
                "overlap": round(float(report.overlap), 4),
                "low_overlap": bool(report.low_overlap),
            },
            "states": {state: int(counts.get(state, 0)) for state in self.assignment.levels},
        }


def _log_state_counts(assignment: StateAssignment, logger: logging.Logger) -> None:
    freq = assignment.frequencies()
    counts = assignment.counts()
    for state in assignment.levels:
        logger.info("    %-12s %6d (%5.1f%%)", state, counts.get(state, 0), 100.0 * freq[state])


def _record_run(
    adata: ad.AnnData,
    assignment: StateAssignment,
    label_col: str,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    info = dict(adata.uns.get(UNS_KEY, {}))
    info.update({
        "label_col": label_col,
        "threshold": float(assignment.threshold),
        "include_g0": bool(assignment.include_g0),
        "classes": list(assignment.probabilities.labels.labels),
        "n_unknown": int(assignment.counts().get(UNKNOWN_LABEL, 0)),
    })
    if extra:
        info.update(extra)
    adata.uns[UNS_KEY] = info


def adjust_cell_cycle_threshold(
    adata: ad.AnnData,
    labels: ClassLabelSet,
    threshold: float = 0.5,
    include_g0: bool = False,
    label_col: str = "cell_cycle_state",
    state_config: Optional[StateConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> StateAssignment:
    """Re-decide states from probabilities already attached to ``adata.obs``.

    Only the label column is replaced; the probability columns and the
    classifier are not touched.

    Args:
        adata: AnnData previously passed through prediction
        labels: Class label set used at prediction time
        threshold: New confidence threshold
        include_g0: Keep fine-grained quiescence calls
        label_col: obs column receiving the state label
        state_config: State vocabulary (default configuration if None)
        logger: Optional logger instance

    Returns:
        The new StateAssignment
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    logger.info("Adjusting threshold: %.2f (include_g0=%s)", threshold, include_g0)
    table = ProbabilityTable.from_obs(adata.obs, labels)
    assignment = decide_states(
        table,
        threshold=threshold,
        include_g0=include_g0,
        state_config=state_config,
    )
    annotate_obs(
        adata,
        assignment,
        label_col=label_col,
        include_probabilities=False,
        state_config=state_config,
        logger=logger,
    )
    _record_run(adata, assignment, label_col)
    _log_state_counts(assignment, logger)
    return assignment


class CellCycleEngine:
    """Cell-cycle state classifier for single-cell expression data.

    The marker panel, class label set and classifier are loaded once by
    the caller and shared read-only across runs.

    Example:
        >>> panel = load_marker_panel("genes.csv", species="human", gene_id="ensembl")
        >>> labels = load_class_labels("classes.txt")
        >>> clf = DenseNetworkClassifier.from_npz("weights.npz")
        >>> engine = CellCycleEngine(panel, labels, clf)
        >>> result = engine.predict(adata)
        >>> # adata.obs now has one column per class plus "cell_cycle_state"
        >>> engine.adjust_threshold(adata, threshold=0.7)
    """

    def __init__(
        self,
        panel: MarkerPanel,
        labels: ClassLabelSet,
        classifier: BaseClassifier,
        params: Optional[CellCycleParams] = None,
        state_config: Optional[StateConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the engine.

        Args:
            panel: Marker panel (classifier input order)
            labels: Class label set (classifier output order)
            classifier: Classifier strategy
            params: Run parameters (uses defaults if None)
            state_config: State vocabulary (uses defaults if None)
            logger: Logger instance
        """
        self.panel = panel
        self.labels = labels
        self.classifier = classifier
        self.params = (params or CellCycleParams()).check()
        self.state_config = state_config or StateConfig()
        self.logger = logger or logging.getLogger(__name__)

        if self.params.species != panel.species or self.params.gene_id != panel.gene_id:
            self.logger.warning(
                "Parameters request %s/%s identifiers but the panel holds %s/%s",
                self.params.species,
                self.params.gene_id,
                panel.species,
                panel.gene_id,
            )

    def _resolve_params(
        self,
        threshold: Optional[float],
        include_g0: Optional[bool],
    ) -> CellCycleParams:
        overrides: Dict[str, Any] = {}
        if threshold is not None:
            overrides["threshold"] = threshold
        if include_g0 is not None:
            overrides["include_g0"] = include_g0
        return replace(self.params, **overrides).check()

    def validate_input(self, adata: ad.AnnData) -> list:
        """Validate input AnnData against the run parameters.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []
        params = self.params
        if adata.n_obs == 0:
            errors.append("AnnData has no cells")
        if adata.n_vars == 0:
            errors.append("AnnData has no genes")
        if params.spatial and "spatial" not in adata.obsm:
            errors.append("spatial=True but AnnData.obsm has no 'spatial' coordinates")

        if params.assay == "residuals":
            if params.do_normalize:
                if params.counts_layer is not None and params.counts_layer not in adata.layers:
                    errors.append(f"Missing counts layer: {params.counts_layer}")
            elif params.residuals_layer not in adata.layers:
                errors.append(
                    f"Missing residuals layer: {params.residuals_layer} "
                    "(set do_normalize=True to compute it)"
                )
        elif params.data_layer is not None and params.data_layer not in adata.layers:
            errors.append(f"Missing data layer: {params.data_layer}")
        return errors

    def _expression_for_panel(self, adata: ad.AnnData) -> pd.DataFrame:
        params = self.params
        if params.assay == "residuals" and params.do_normalize:
            self.logger.info("  Redoing normalization to ensure maximum overlap with classifier genes...")
            normalized = normalize_residuals(adata, layer=params.counts_layer, logger=self.logger)
            return expression_frame(normalized, self.panel.genes)
        if params.assay == "residuals":
            return expression_frame(adata, self.panel.genes, layer=params.residuals_layer)
        return expression_frame(adata, self.panel.genes, layer=params.data_layer)

    def classify_expression(
        self,
        scaled: pd.DataFrame,
        threshold: Optional[float] = None,
        include_g0: Optional[bool] = None,
    ) -> CellCycleResult:
        """Align, classify and decide on already-scaled expression.

        Args:
            scaled: Scaled expression, genes (index) x cells (columns)
            threshold: Overrides params.threshold
            include_g0: Overrides params.include_g0

        Returns:
            CellCycleResult without an attached AnnData
        """
        params = self._resolve_params(threshold, include_g0)

        aligned = align_features(
            scaled,
            self.panel,
            min_overlap=params.min_overlap,
            logger=self.logger,
        )

        self.logger.info("  Predicting cell cycle state probabilities...")
        probabilities = predict_probabilities(
            self.classifier,
            aligned,
            self.labels,
            n_workers=params.n_workers,
            batch_size=params.batch_size,
            logger=self.logger,
        )

        self.logger.info("  Choosing cell cycle state...")
        assignment = decide_states(
            probabilities,
            threshold=params.threshold,
            include_g0=params.include_g0,
            state_config=self.state_config,
        )
        return CellCycleResult(
            adata=None,
            aligned=aligned,
            probabilities=probabilities,
            assignment=assignment,
        )

    def predict(
        self,
        adata: ad.AnnData,
        threshold: Optional[float] = None,
        include_g0: Optional[bool] = None,
    ) -> CellCycleResult:
        """Run the full prediction pipeline and attach results to ``adata.obs``.

        The expression data of ``adata`` is not modified; only obs and uns
        receive the results.

        Args:
            adata: Cells x genes AnnData
            threshold: Overrides params.threshold
            include_g0: Overrides params.include_g0

        Returns:
            CellCycleResult

        Raises:
            ValueError: If the input fails validation
        """
        params = self._resolve_params(threshold, include_g0)

        self.logger.info("=" * 70)
        self.logger.info("CELL CYCLE CLASSIFIER")
        self.logger.info("=" * 70)
        self.logger.info("Cells: %d, genes: %d", adata.n_obs, adata.n_vars)
        self.logger.info(
            "Assay: %s, species: %s, gene_id: %s, spatial: %s",
            params.assay,
            params.species,
            params.gene_id,
            params.spatial,
        )
        self.logger.info("")

        errors = self.validate_input(adata)
        if errors:
            raise ValueError("Invalid input: " + "; ".join(errors))

        self.logger.info("Phase 1: Preparing expression for %d marker genes...", len(self.panel))
        frame = self._expression_for_panel(adata)
        scaled = scale_genes(frame)

        self.logger.info("Phase 2: Classifying cells...")
        result = self.classify_expression(
            scaled,
            threshold=params.threshold,
            include_g0=params.include_g0,
        )

        self.logger.info("Phase 3: Adding probabilities and predictions to metadata...")
        annotate_obs(
            adata,
            result.assignment,
            label_col=params.label_col,
            state_config=self.state_config,
            logger=self.logger,
        )
        report = result.aligned.report
        _record_run(
            adata,
            result.assignment,
            params.label_col,
            extra={
                "assay": params.assay,
                "species": params.species,
                "gene_id": params.gene_id,
                "spatial": bool(params.spatial),
                "n_panel_genes": int(report.n_total),
                "n_present_genes": int(report.n_present),
                "n_missing_genes": int(report.n_missing),
            },
        )

        self.logger.info("")
        self.logger.info("Cell cycle classification complete!")
        _log_state_counts(result.assignment, self.logger)

        result.adata = adata
        return result

    def adjust_threshold(
        self,
        adata: ad.AnnData,
        threshold: float = 0.5,
        include_g0: bool = False,
    ) -> StateAssignment:
        """Re-apply the decision step with a new threshold and collapse setting."""
        return adjust_cell_cycle_threshold(
            adata,
            self.labels,
            threshold=threshold,
            include_g0=include_g0,
            label_col=self.params.label_col,
            state_config=self.state_config,
            logger=self.logger,
        )

    def sweep(
        self,
        adata: ad.AnnData,
        thresholds: Sequence[float] = DEFAULT_SWEEP_THRESHOLDS,
        include_g0: bool = False,
    ) -> pd.DataFrame:
        """Threshold sweep over the probabilities attached to ``adata.obs``."""
        table = ProbabilityTable.from_obs(adata.obs, self.labels)
        return threshold_sweep(
            table,
            thresholds=thresholds,
            include_g0=include_g0,
            state_config=self.state_config,
            logger=self.logger,
        )
