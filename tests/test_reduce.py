"""Tests for combining per-chunk results."""

import numpy as np
import pandas as pd
import pytest

from bgdata.chunked.reduce import simplify_results
from bgdata.errors import InvalidConfiguration, ShapeMismatch

pytestmark = pytest.mark.tier0


class TestSimplifyResults:
    """Tests for simplify_results()."""

    def test_vectors_concatenated(self):
        result = simplify_results([np.array([1, 2]), np.array([3]), np.array([4, 5])])
        np.testing.assert_array_equal(result, [1, 2, 3, 4, 5])

    def test_scalars_flattened(self):
        np.testing.assert_array_equal(simplify_results([1.5, 2.5]), [1.5, 2.5])

    def test_matrices_column_bound(self):
        a = np.ones((2, 3))
        b = np.zeros((2, 1))
        result = simplify_results([a, b])
        assert result.shape == (2, 4)
        np.testing.assert_array_equal(result[:, 3], [0.0, 0.0])

    def test_series_concatenated(self):
        result = simplify_results(
            [pd.Series([1, 2], index=["a", "b"]), pd.Series([3], index=["c"])]
        )
        assert list(result.index) == ["a", "b", "c"]
        assert result.tolist() == [1, 2, 3]

    def test_frames_keep_first_row_labels(self):
        first = pd.DataFrame([[1], [2]], index=["lo", "hi"], columns=["a"])
        second = pd.DataFrame([[3], [4]], columns=["b"])
        result = simplify_results([first, second])
        assert list(result.index) == ["lo", "hi"]
        assert list(result.columns) == ["a", "b"]
        assert result.loc["hi", "b"] == 4

    def test_lists_chained(self):
        assert simplify_results([[1, 2], [3]]) == [1, 2, 3]

    def test_dicts_concatenated_in_order(self):
        result = simplify_results([{"a": 1}, {"b": 2}, {"c": 3}])
        assert list(result.index) == ["a", "b", "c"]
        assert result.tolist() == [1, 2, 3]

    def test_repeated_keys_kept(self):
        result = simplify_results([{"a": [1]}, {"a": [2], "b": [3]}])
        assert list(result.index) == ["a", "a", "b"]
        assert result.tolist() == [[1], [2], [3]]

    def test_labelled_lists_keep_repeated_labels(self):
        first = pd.Series([[1], [2]], index=["a", "b"], dtype=object)
        second = pd.Series([[3]], index=["a"], dtype=object)
        result = simplify_results([first, second])
        assert list(result.index) == ["a", "b", "a"]
        assert result.tolist() == [[1], [2], [3]]

    def test_no_chunks(self):
        assert simplify_results([]).shape == (0,)

    def test_mixed_families_rejected(self):
        with pytest.raises(ShapeMismatch) as exc_info:
            simplify_results([np.ones((2, 2)), np.ones((2, 2)), np.ones(3)])
        assert exc_info.value.chunk_index == 2
        assert "chunk 3 returned a vector" in str(exc_info.value)

    def test_row_count_mismatch_rejected(self):
        with pytest.raises(ShapeMismatch, match="3 rows but chunk 1 returned 2") as exc:
            simplify_results([np.ones((2, 2)), np.ones((3, 2))])
        assert exc.value.chunk_index == 1

    def test_shape_mismatch_is_value_error(self):
        with pytest.raises(ValueError):
            simplify_results([[1], {"a": 1}])


class TestRowBinding:
    """simplify_results(axis=0) for chunks taken along rows."""

    def test_matrices_row_bound(self):
        X = np.arange(40.0).reshape(10, 4)
        parts = [X[0:3], X[3:6], X[6:9], X[9:10]]
        np.testing.assert_array_equal(simplify_results(parts, axis=0), X)

    def test_frames_keep_first_column_labels(self):
        first = pd.DataFrame([[1, 2]], index=["r1"], columns=["a", "b"])
        second = pd.DataFrame([[3, 4]], index=["r2"])
        result = simplify_results([first, second], axis=0)
        assert list(result.index) == ["r1", "r2"]
        assert list(result.columns) == ["a", "b"]
        assert result.loc["r2", "b"] == 4

    def test_column_count_mismatch_rejected(self):
        with pytest.raises(ShapeMismatch, match="3 columns but chunk 1 returned 4"):
            simplify_results([np.ones((2, 4)), np.ones((1, 3))], axis=0)

    def test_row_counts_may_differ(self):
        result = simplify_results([np.ones((3, 2)), np.ones((1, 2))], axis=0)
        assert result.shape == (4, 2)

    @pytest.mark.parametrize("axis", [2, -1])
    def test_invalid_axis(self, axis):
        with pytest.raises(InvalidConfiguration, match="axis must be 0"):
            simplify_results([np.ones((2, 2))], axis=axis)
