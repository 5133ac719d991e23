"""Unit tests for the command-line interface."""

import pandas as pd
import pytest
import yaml
from click.testing import CliRunner

from cellcycle_classifier.cli import cli
from tests.fixtures import create_counts_adata, write_gene_table


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def input_h5ad(tmp_path, counts_adata):
    path = tmp_path / "input.h5ad"
    counts_adata.write_h5ad(path)
    return path


@pytest.fixture
def predicted_h5ad(runner, tmp_path, input_h5ad, gene_table_path, classes_path, weights_path):
    out = tmp_path / "predicted.h5ad"
    result = runner.invoke(cli, [
        "predict",
        "-i", str(input_h5ad),
        "-g", str(gene_table_path),
        "-c", str(classes_path),
        "-w", str(weights_path),
        "-o", str(out),
        "--threshold", "0.3",
    ])
    assert result.exit_code == 0, result.output
    return out


class TestCli:
    """Tests for CLI commands."""

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("predict", "adjust-threshold", "sweep", "module-scores"):
            assert command in result.output

    def test_predict(self, predicted_h5ad):
        import anndata as ad

        adata = ad.read_h5ad(predicted_h5ad)
        assert "cell_cycle_state" in adata.obs.columns
        assert "G2_M" in adata.obs.columns
        assert adata.uns["cell_cycle"]["threshold"] == pytest.approx(0.3)

    def test_predict_with_summary_and_config(
        self, runner, tmp_path, input_h5ad, gene_table_path, classes_path, weights_path, params_yaml
    ):
        out = tmp_path / "out.h5ad"
        summary = tmp_path / "summary.yaml"
        result = runner.invoke(cli, [
            "predict",
            "-i", str(input_h5ad),
            "-g", str(gene_table_path),
            "-c", str(classes_path),
            "-w", str(weights_path),
            "-o", str(out),
            "--config", str(params_yaml),
            "--threshold", "0.2",
            "--summary", str(summary),
        ])
        assert result.exit_code == 0, result.output

        record = yaml.safe_load(summary.read_text())
        assert record["n_cells"] == 60
        # Command-line threshold overrides the config file
        assert record["threshold"] == pytest.approx(0.2)
        assert record["include_g0"] is True
        assert record["params"]["assay"] == "data"
        assert record["panel"]["n_missing"] == 2

    def test_predict_invalid_threshold(
        self, runner, tmp_path, input_h5ad, gene_table_path, classes_path, weights_path
    ):
        result = runner.invoke(cli, [
            "predict",
            "-i", str(input_h5ad),
            "-g", str(gene_table_path),
            "-c", str(classes_path),
            "-w", str(weights_path),
            "-o", str(tmp_path / "out.h5ad"),
            "--threshold", "1.5",
        ])
        assert result.exit_code != 0

    def test_adjust_threshold_uses_stored_classes(self, runner, tmp_path, predicted_h5ad):
        import anndata as ad

        out = tmp_path / "strict.h5ad"
        result = runner.invoke(cli, [
            "adjust-threshold", "-i", str(predicted_h5ad), "-t", "0.99", "-o", str(out),
        ])
        assert result.exit_code == 0, result.output
        assert "Unknown" in result.output

        adata = ad.read_h5ad(out)
        assert adata.uns["cell_cycle"]["threshold"] == pytest.approx(0.99)
        assert (adata.obs["cell_cycle_state"] == "Unknown").sum() > 0

    def test_adjust_threshold_without_prediction(self, runner, tmp_path, input_h5ad):
        result = runner.invoke(cli, [
            "adjust-threshold", "-i", str(input_h5ad), "-o", str(tmp_path / "x.h5ad"),
        ])
        assert result.exit_code != 0
        assert "Run prediction first" in result.output

    def test_sweep(self, runner, tmp_path, predicted_h5ad):
        out = tmp_path / "sweep.csv"
        result = runner.invoke(cli, [
            "sweep", "-i", str(predicted_h5ad), "-o", str(out), "-t", "0.0", "-t", "0.5",
        ])
        assert result.exit_code == 0, result.output

        sweep = pd.read_csv(out)
        assert list(sweep.columns) == ["state", "threshold", "frequency"]
        assert set(sweep["threshold"]) == {0.0, 0.5}

    def test_module_scores(self, runner, tmp_path):
        adata = create_counts_adata(n_cells=40, n_genes=120)
        adata.X = adata.layers["lognorm"].copy()
        input_path = tmp_path / "lognorm.h5ad"
        adata.write_h5ad(input_path)

        genes = list(adata.var_names)
        modules = {
            "Late G1": genes[0:8],
            "S": genes[8:16],
            "S/G2": genes[16:24],
            "G2/M": genes[24:32],
            "M/Early G1": genes[32:40],
        }
        table = write_gene_table(tmp_path / "modules.csv", genes[:40], modules=modules)

        out = tmp_path / "scored.h5ad"
        result = runner.invoke(cli, [
            "module-scores", "-i", str(input_path), "-g", str(table), "-o", str(out),
        ])
        assert result.exit_code == 0, result.output
        assert "G2_M_exprs" in result.output
