"""Unit tests for run parameters and logging utilities."""

import logging

import pytest
import yaml

from cellcycle_classifier.core.classification import CellCycleParams
from cellcycle_classifier.io import attach_file_log, timestamped_path, write_run_summary


class TestCellCycleParams:
    """Tests for CellCycleParams dataclass."""

    def test_default_values(self):
        """Test default parameter values."""
        params = CellCycleParams()
        assert params.threshold == 0.5
        assert params.include_g0 is False
        assert params.assay == "residuals"
        assert params.do_normalize is True
        assert params.species == "human"
        assert params.gene_id == "ensembl"
        assert params.spatial is False
        assert params.min_overlap == 0.8
        assert params.validate() == []

    def test_validate_collects_all_errors(self):
        params = CellCycleParams(threshold=-0.1, assay="counts", species="yeast", n_workers=0)
        errors = params.validate()
        assert len(errors) == 4

    def test_check_raises(self):
        with pytest.raises(ValueError, match="Invalid cell-cycle parameters"):
            CellCycleParams(gene_id="entrez").check()

    def test_from_yaml_nested(self, params_yaml):
        params = CellCycleParams.from_yaml(params_yaml)
        assert params.threshold == 0.6
        assert params.include_g0 is True
        assert params.assay == "data"
        assert params.data_layer == "lognorm"
        # Untouched fields keep their defaults
        assert params.species == "human"

    def test_from_yaml_flat(self, tmp_path):
        path = tmp_path / "flat.yaml"
        path.write_text("threshold: 0.7\nspecies: mouse\n")
        params = CellCycleParams.from_yaml(path)
        assert params.threshold == 0.7
        assert params.species == "mouse"

    def test_from_yaml_unknown_key(self, tmp_path):
        path = tmp_path / "typo.yaml"
        path.write_text("treshold: 0.7\n")
        with pytest.raises(ValueError, match="treshold"):
            CellCycleParams.from_yaml(path)

    def test_from_yaml_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CellCycleParams.from_yaml(tmp_path / "none.yaml")

    def test_to_dict_roundtrip(self, tmp_path):
        params = CellCycleParams(threshold=0.3, n_workers=4)
        path = tmp_path / "roundtrip.yaml"
        path.write_text(yaml.safe_dump(params.to_dict()))
        assert CellCycleParams.from_yaml(path) == params


class TestLogging:
    """Tests for run log files and summaries."""

    def test_timestamped_path(self, tmp_path):
        path = timestamped_path(tmp_path / "cell_cycle.log")
        assert path.parent == tmp_path
        assert path.name.startswith("cell_cycle_")
        assert path.suffix == ".log"

    def test_attach_file_log(self, tmp_path):
        logger = logging.getLogger("cellcycle_classifier.test_attach")
        logger.propagate = False
        _, path = attach_file_log(logger, tmp_path / "logs" / "run.log", timestamped=False)
        try:
            logger.info("hello from the test")
        finally:
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)

        assert path == tmp_path / "logs" / "run.log"
        assert "hello from the test" in path.read_text()

    def test_write_run_summary(self, tmp_output_dir):
        record = {"n_cells": 10, "states": {"S/G2": 3, "Unknown": 7}}
        path = write_run_summary(tmp_output_dir / "summary.yaml", record)
        assert yaml.safe_load(path.read_text()) == record
