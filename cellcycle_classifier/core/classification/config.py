"""Configuration for cell-cycle classification runs.

All run parameters are explicit and can be loaded from YAML.
"""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .alignment import DEFAULT_MIN_OVERLAP
from .decision import validate_threshold
from .panel import validate_gene_id, validate_species

ASSAYS = ("residuals", "data")


@dataclass
class CellCycleParams:
    """Parameters for cell-cycle state prediction.

    Attributes
    ----------
    threshold : float
        Minimum arg-max probability for a state call; lower calls become
        Unknown
    include_g0 : bool
        Keep Neural G0, G1 and Late G1 calls instead of collapsing them
        into G0/G1
    assay : str
        'residuals' (variance-stabilized Pearson residuals) or 'data'
        (prenormalized expression read as-is)
    do_normalize : bool
        Recompute Pearson residuals over all genes before classifying
        (assay='residuals' only)
    species : str
        'human' or 'mouse'
    gene_id : str
        'ensembl' or 'symbol'
    spatial : bool
        Whether observations are spatial spots
    counts_layer : str, optional
        Layer holding raw counts for normalization (None = X)
    residuals_layer : str
        Layer holding precomputed residuals when do_normalize is False
    data_layer : str, optional
        Layer read for assay='data' (None = X)
    min_overlap : float
        Panel overlap fraction below which a warning is emitted
    label_col : str
        obs column receiving the state label
    n_workers : int
        Classifier worker processes (1 = sequential)
    batch_size : int
        Cells per classifier batch
    """

    threshold: float = 0.5
    include_g0: bool = False
    assay: str = "residuals"
    do_normalize: bool = True
    species: str = "human"
    gene_id: str = "ensembl"
    spatial: bool = False
    counts_layer: Optional[str] = None
    residuals_layer: str = "residuals"
    data_layer: Optional[str] = None
    min_overlap: float = DEFAULT_MIN_OVERLAP
    label_col: str = "cell_cycle_state"
    n_workers: int = 1
    batch_size: int = 1024

    def validate(self) -> List[str]:
        """Check parameter values.

        Returns
        -------
        List[str]
            Validation errors (empty if valid)
        """
        errors = []
        try:
            validate_threshold(self.threshold)
        except ValueError as e:
            errors.append(str(e))
        if self.assay not in ASSAYS:
            errors.append(f"Unknown assay '{self.assay}'. Expected one of {list(ASSAYS)}")
        for check, value in ((validate_species, self.species), (validate_gene_id, self.gene_id)):
            try:
                check(value)
            except ValueError as e:
                errors.append(str(e))
        if not 0.0 <= self.min_overlap <= 1.0:
            errors.append(f"min_overlap must be within [0, 1], got {self.min_overlap}")
        if self.n_workers < 1:
            errors.append(f"n_workers must be >= 1, got {self.n_workers}")
        if self.batch_size < 1:
            errors.append(f"batch_size must be >= 1, got {self.batch_size}")
        if not self.label_col:
            errors.append("label_col must be a non-empty string")
        return errors

    def check(self) -> "CellCycleParams":
        """Raise ValueError listing every invalid parameter."""
        errors = self.validate()
        if errors:
            raise ValueError("Invalid cell-cycle parameters: " + "; ".join(errors))
        return self

    @classmethod
    def from_yaml(cls, path: Path) -> "CellCycleParams":
        """Load parameters from YAML (optionally nested under ``cell_cycle``)."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        if "cell_cycle" in data:
            data = data["cell_cycle"] or {}

        unknown = sorted(set(data) - set(cls.__dataclass_fields__))
        if unknown:
            raise ValueError(f"Unknown cell-cycle parameters in {path}: {unknown}")
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)
