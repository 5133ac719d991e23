"""Cell-cycle classification module.

Provides marker panel alignment, classifier invocation, threshold-based
state decisions and the threshold sweep.
"""

from .alignment import (
    DEFAULT_MIN_OVERLAP,
    AlignedFeatureMatrix,
    AlignmentReport,
    LowMarkerOverlapWarning,
    align_features,
    replace_nonfinite,
)
from .assignment import annotate_obs
from .classifier import (
    BaseClassifier,
    ClassifierShapeError,
    DenseNetworkClassifier,
    FunctionClassifier,
    predict_probabilities,
)
from .config import ASSAYS, CellCycleParams
from .decision import (
    ProbabilityTable,
    StateAssignment,
    decide_states,
    probability_column,
    probability_columns,
    validate_threshold,
)
from .engine import (
    CellCycleEngine,
    CellCycleResult,
    adjust_cell_cycle_threshold,
)
from .modules import module_score_name, prepare_for_regression
from .normalization import expression_frame, normalize_residuals, scale_genes
from .panel import (
    DEFAULT_CLASS_LABELS,
    DEFAULT_MODULES,
    GENE_ID_SCHEMES,
    SPECIES,
    ClassLabelSet,
    MarkerPanel,
    load_class_labels,
    load_gene_modules,
    load_marker_panel,
    panel_column,
)
from .sweep import DEFAULT_SWEEP_THRESHOLDS, threshold_sweep

__all__ = [
    # Engine
    "CellCycleEngine",
    "CellCycleResult",
    "CellCycleParams",
    "ASSAYS",
    "adjust_cell_cycle_threshold",
    # Panel
    "ClassLabelSet",
    "MarkerPanel",
    "DEFAULT_CLASS_LABELS",
    "DEFAULT_MODULES",
    "SPECIES",
    "GENE_ID_SCHEMES",
    "load_class_labels",
    "load_marker_panel",
    "load_gene_modules",
    "panel_column",
    # Normalization
    "normalize_residuals",
    "expression_frame",
    "scale_genes",
    # Alignment
    "DEFAULT_MIN_OVERLAP",
    "AlignedFeatureMatrix",
    "AlignmentReport",
    "LowMarkerOverlapWarning",
    "align_features",
    "replace_nonfinite",
    # Classifier
    "BaseClassifier",
    "ClassifierShapeError",
    "DenseNetworkClassifier",
    "FunctionClassifier",
    "predict_probabilities",
    # Decision
    "ProbabilityTable",
    "StateAssignment",
    "decide_states",
    "probability_column",
    "probability_columns",
    "validate_threshold",
    # Sweep
    "DEFAULT_SWEEP_THRESHOLDS",
    "threshold_sweep",
    # Assignment
    "annotate_obs",
    # Module scores
    "module_score_name",
    "prepare_for_regression",
]
