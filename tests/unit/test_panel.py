"""Unit tests for marker panel and class label loading."""

import pandas as pd
import pytest

from cellcycle_classifier.core.classification import (
    DEFAULT_CLASS_LABELS,
    ClassLabelSet,
    MarkerPanel,
    load_class_labels,
    load_gene_modules,
    load_marker_panel,
    panel_column,
)
from tests.fixtures import write_class_labels, write_gene_table


class TestClassLabelSet:
    """Tests for ClassLabelSet dataclass."""

    def test_order_preserved(self):
        """Test labels keep classifier output order."""
        labels = ClassLabelSet(("B", "A", "C"))
        assert labels.labels == ("B", "A", "C")
        assert labels.index("A") == 1
        assert len(labels) == 3
        assert list(labels) == ["B", "A", "C"]

    def test_empty_rejected(self):
        """Test empty label set."""
        with pytest.raises(ValueError, match="empty"):
            ClassLabelSet(())

    def test_duplicates_rejected(self):
        """Test duplicated labels."""
        with pytest.raises(ValueError, match="Duplicated"):
            ClassLabelSet(("A", "B", "A"))

    def test_unknown_reserved(self):
        """Test Unknown cannot be a class."""
        with pytest.raises(ValueError, match="reserved"):
            ClassLabelSet(("A", "Unknown"))


class TestMarkerPanel:
    """Tests for MarkerPanel dataclass."""

    def test_duplicates_rejected(self):
        with pytest.raises(ValueError, match="Duplicated"):
            MarkerPanel(("g1", "g2", "g1"))

    def test_invalid_species(self):
        with pytest.raises(ValueError, match="species"):
            MarkerPanel(("g1",), species="zebrafish")

    def test_panel_column(self):
        assert panel_column("mouse", "symbol") == "mouse_symbol"
        with pytest.raises(ValueError):
            panel_column("human", "entrez")


class TestLoadClassLabels:
    """Tests for load_class_labels."""

    def test_load_default_labels(self, classes_path):
        """Test labels with spaces and slashes are read verbatim."""
        labels = load_class_labels(classes_path)
        assert labels.labels == DEFAULT_CLASS_LABELS

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_class_labels(tmp_path / "missing.txt")

    def test_duplicate_in_file(self, tmp_path):
        path = write_class_labels(tmp_path / "dup.txt", ["G1", "S", "G1"])
        with pytest.raises(ValueError):
            load_class_labels(path)


class TestLoadMarkerPanel:
    """Tests for load_marker_panel."""

    def test_load_human_ensembl(self, gene_table_path, panel_genes):
        """Test panel order follows table row order."""
        panel = load_marker_panel(gene_table_path, species="human", gene_id="ensembl")
        assert panel.genes == tuple(panel_genes)
        assert panel.species == "human"

    def test_load_mouse_symbol(self, gene_table_path, panel_genes):
        panel = load_marker_panel(gene_table_path, species="mouse", gene_id="symbol")
        assert panel.genes[0] == "Mgene0"
        assert len(panel) == len(panel_genes)

    def test_missing_column(self, tmp_path):
        """Test missing species/scheme column."""
        path = tmp_path / "genes.csv"
        pd.DataFrame({"human_ensembl": ["g1", "g2"]}, index=["r1", "r2"]).to_csv(path)
        with pytest.raises(ValueError, match="mouse_ensembl"):
            load_marker_panel(path, species="mouse", gene_id="ensembl")

    def test_empty_entries(self, tmp_path):
        """Test incomplete identifier column."""
        path = tmp_path / "genes.csv"
        pd.DataFrame({"human_ensembl": ["g1", None, "g3"]}, index=["r1", "r2", "r3"]).to_csv(path)
        with pytest.raises(ValueError, match="empty"):
            load_marker_panel(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_marker_panel(tmp_path / "missing.csv")


class TestLoadGeneModules:
    """Tests for load_gene_modules."""

    def test_modules_from_membership_columns(self, gene_table_path, panel_genes):
        """Test module members are the rows flagged 1."""
        modules = load_gene_modules(gene_table_path, modules=["S", "G2/M"])
        assert modules["S"] == tuple(panel_genes[:5])
        assert modules["G2/M"] == tuple(panel_genes[5:12])

    def test_missing_module_column(self, gene_table_path):
        """Test default modules require all five columns."""
        with pytest.raises(ValueError, match="Late G1"):
            load_gene_modules(gene_table_path)
