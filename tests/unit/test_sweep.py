"""Unit tests for the threshold sweep."""

import numpy as np
import pandas as pd
import pytest

from cellcycle_classifier.core.classification import (
    DEFAULT_SWEEP_THRESHOLDS,
    ClassLabelSet,
    ProbabilityTable,
    decide_states,
    threshold_sweep,
)
from tests.fixtures import create_probability_frame


class TestThresholdSweep:
    """Tests for threshold_sweep."""

    def test_long_form_layout(self, probability_table):
        result = threshold_sweep(probability_table)
        assert list(result.columns) == ["state", "threshold", "frequency"]
        # 5 collapsed states + Unknown per threshold
        assert len(result) == 6 * len(DEFAULT_SWEEP_THRESHOLDS)
        assert sorted(result["threshold"].unique()) == pytest.approx(list(DEFAULT_SWEEP_THRESHOLDS))

    def test_frequencies_sum_to_one(self, probability_table):
        result = threshold_sweep(probability_table, include_g0=True)
        totals = result.groupby("threshold")["frequency"].sum()
        np.testing.assert_allclose(totals.to_numpy(), 1.0)

    def test_consistent_with_decide_states(self, probability_table):
        """Test each sweep slice equals a direct decision at that threshold."""
        result = threshold_sweep(probability_table, thresholds=[0.3, 0.6])
        for threshold in (0.3, 0.6):
            expected = decide_states(probability_table, threshold=threshold).frequencies()
            observed = (
                result[result["threshold"] == threshold]
                .set_index("state")["frequency"]
            )
            observed.index = observed.index.astype(str)
            pd.testing.assert_series_equal(
                observed.reindex(expected.index),
                expected.astype(float),
                check_names=False,
            )

    def test_zero_frequency_states_reported(self):
        labels = ClassLabelSet(("A", "B", "C"))
        frame = create_probability_frame([[0.9, 0.05, 0.05], [0.6, 0.3, 0.1]], ["A", "B", "C"])
        result = threshold_sweep(ProbabilityTable(frame, labels), thresholds=[0.0, 0.7])

        at_zero = result[result["threshold"] == 0.0].set_index("state")["frequency"]
        assert at_zero["A"] == 1.0
        assert at_zero["B"] == 0.0
        assert at_zero["Unknown"] == 0.0

        at_07 = result[result["threshold"] == 0.7].set_index("state")["frequency"]
        assert at_07["A"] == 0.5
        assert at_07["Unknown"] == 0.5

    def test_unknown_fraction_nondecreasing(self, probability_table):
        result = threshold_sweep(probability_table)
        unknown = result[result["state"] == "Unknown"].sort_values("threshold")["frequency"]
        assert (np.diff(unknown.to_numpy()) >= 0).all()

    def test_state_is_ordered_categorical(self, probability_table):
        result = threshold_sweep(probability_table)
        assert isinstance(result["state"].dtype, pd.CategoricalDtype)
        assert list(result["state"].cat.categories)[0] == "G0/G1"
        assert list(result["state"].cat.categories)[-1] == "Unknown"

    def test_empty_table(self, labels):
        frame = pd.DataFrame(columns=list(labels.labels), dtype=float)
        with pytest.raises(ValueError, match="empty"):
            threshold_sweep(ProbabilityTable(frame, labels))

    def test_no_thresholds(self, probability_table):
        with pytest.raises(ValueError, match="No thresholds"):
            threshold_sweep(probability_table, thresholds=[])

    def test_threshold_out_of_range(self, probability_table):
        with pytest.raises(ValueError):
            threshold_sweep(probability_table, thresholds=[0.5, -0.1])
