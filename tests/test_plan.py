"""Tests for chunk boundary arithmetic."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from bgdata.chunked.plan import chunk_range, count_chunks, plan_chunks
from bgdata.errors import InvalidConfiguration

pytestmark = pytest.mark.tier0


class TestPlanChunks:
    """Tests for count_chunks, chunk_range and plan_chunks."""

    def test_ten_by_three(self):
        assert count_chunks(10, 3) == 4
        assert plan_chunks(10, 3) == [
            range(0, 3),
            range(3, 6),
            range(6, 9),
            range(9, 10),
        ]

    def test_exact_multiple(self):
        assert plan_chunks(6, 3) == [range(0, 3), range(3, 6)]

    def test_zero_extent(self):
        assert count_chunks(0, 5) == 0
        assert plan_chunks(0, 5) == []

    def test_zero_extent_unbounded(self):
        assert plan_chunks(0, None) == []

    def test_unbounded_is_one_chunk(self):
        assert plan_chunks(7, None) == [range(0, 7)]

    def test_chunk_larger_than_extent(self):
        assert plan_chunks(4, 100) == [range(0, 4)]

    def test_chunk_range_last(self):
        assert chunk_range(3, 10, 3) == range(9, 10)

    @pytest.mark.parametrize("chunk_size", [0, -3])
    def test_non_positive_chunk_size(self, chunk_size):
        with pytest.raises(InvalidConfiguration, match="must be positive"):
            count_chunks(10, chunk_size)

    @pytest.mark.parametrize("chunk_size", [2.5, "3", True])
    def test_non_integer_chunk_size(self, chunk_size):
        with pytest.raises(InvalidConfiguration):
            plan_chunks(10, chunk_size)

    @given(
        extent=st.integers(min_value=0, max_value=500),
        chunk_size=st.integers(min_value=1, max_value=60),
    )
    def test_ranges_partition_extent(self, extent, chunk_size):
        ranges = plan_chunks(extent, chunk_size)
        positions = [pos for r in ranges for pos in r]
        assert positions == list(range(extent))
        assert all(0 < len(r) <= chunk_size for r in ranges)
        assert all(len(r) == chunk_size for r in ranges[:-1])
