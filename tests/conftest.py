"""Pytest configuration and shared fixtures for cellcycle-classifier tests."""

import sys
from pathlib import Path

import pytest

# Add package to path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cellcycle_classifier.core.classification import (
    DEFAULT_CLASS_LABELS,
    ClassLabelSet,
    MarkerPanel,
    ProbabilityTable,
)

# Import mock data generators
from tests.fixtures import (
    create_counts_adata,
    create_dense_classifier,
    create_random_probabilities,
    gene_ids,
    write_class_labels,
    write_classifier_weights,
    write_gene_table,
)

N_PANEL_PRESENT = 30
N_PANEL_ABSENT = 2


# ============================================================================
# Resource Fixtures
# ============================================================================


@pytest.fixture
def labels() -> ClassLabelSet:
    """Default seven-class label set in classifier output order."""
    return ClassLabelSet(DEFAULT_CLASS_LABELS)


@pytest.fixture
def panel_genes() -> list:
    """Panel of 30 genes present in counts_adata plus 2 absent ones."""
    present = gene_ids(N_PANEL_PRESENT)
    absent = gene_ids(N_PANEL_ABSENT, prefix="ENSGABSENT")
    return present[:10] + absent[:1] + present[10:] + absent[1:]


@pytest.fixture
def panel(panel_genes) -> MarkerPanel:
    return MarkerPanel(tuple(panel_genes), species="human", gene_id="ensembl")


@pytest.fixture
def dense_classifier(panel, labels):
    """Seeded random network matching the panel and label set."""
    return create_dense_classifier(n_features=len(panel), n_classes=len(labels))


# ============================================================================
# AnnData Fixtures
# ============================================================================


@pytest.fixture
def counts_adata():
    """Mock counts AnnData with 60 cells and 40 genes."""
    return create_counts_adata(n_cells=60, n_genes=40)


@pytest.fixture
def spatial_adata():
    """Mock counts AnnData with spatial coordinates."""
    return create_counts_adata(n_cells=60, n_genes=40, include_spatial=True)


@pytest.fixture
def probability_table(labels) -> ProbabilityTable:
    """200 cells with Dirichlet-distributed class probabilities."""
    return ProbabilityTable(create_random_probabilities(n_cells=200), labels)


# ============================================================================
# File Fixtures
# ============================================================================


@pytest.fixture
def tmp_output_dir(tmp_path: Path) -> Path:
    """Create a temporary output directory for tests."""
    output_dir = tmp_path / "output"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


@pytest.fixture
def gene_table_path(tmp_path, panel_genes) -> Path:
    """Marker gene table with two module columns."""
    return write_gene_table(
        tmp_path / "genes.csv",
        panel_genes,
        modules={"S": panel_genes[:5], "G2/M": panel_genes[5:12]},
    )


@pytest.fixture
def classes_path(tmp_path) -> Path:
    return write_class_labels(tmp_path / "classes.txt")


@pytest.fixture
def weights_path(tmp_path, dense_classifier) -> Path:
    return write_classifier_weights(tmp_path / "weights.npz", dense_classifier)


@pytest.fixture
def params_yaml(tmp_path) -> Path:
    """Run parameter file nested under ``cell_cycle``."""
    import yaml

    config = {
        "cell_cycle": {
            "threshold": 0.6,
            "include_g0": True,
            "assay": "data",
            "data_layer": "lognorm",
        },
    }

    path = tmp_path / "params.yaml"
    with open(path, "w") as f:
        yaml.dump(config, f)

    return path
