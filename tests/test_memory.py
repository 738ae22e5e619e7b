"""Tests for chunk memory estimation."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from bgdata.core.memory import check_chunk_memory, estimate_chunk_memory

pytestmark = pytest.mark.tier0


def _available(gb: float):
    return patch(
        "bgdata.core.memory.psutil.virtual_memory",
        return_value=SimpleNamespace(available=gb * 1e9),
    )


class TestEstimateChunkMemory:
    """Tests for estimate_chunk_memory()."""

    def test_chunk_size(self):
        with _available(100.0):
            est = estimate_chunk_memory(200_000, 5000, itemsize=1, n_workers=4)
        assert est.chunk_gb == pytest.approx(1.0)
        assert est.total_gb == pytest.approx(4.0)
        assert est.sufficient

    def test_insufficient_with_margin(self):
        # 1GB chunk needs 1.1GB with the safety margin
        with _available(1.05):
            est = estimate_chunk_memory(1000, 125_000, itemsize=8)
        assert est.chunk_gb == pytest.approx(1.0)
        assert not est.sufficient

    def test_workers_floor_at_one(self):
        with _available(10.0):
            est = estimate_chunk_memory(10, 10, n_workers=0)
        assert est.total_gb == est.chunk_gb


class TestCheckChunkMemory:
    """Tests for check_chunk_memory()."""

    def test_warns_but_returns(self, caplog_loguru):
        with _available(0.5):
            est = check_chunk_memory(1000, 125_000)
        assert not est.sufficient
        assert "consider a smaller chunk_size" in caplog_loguru.text

    def test_quiet_when_sufficient(self, caplog_loguru):
        with _available(64.0):
            check_chunk_memory(100, 100)
        assert "WARNING" not in caplog_loguru.text
        assert "Chunk memory" in caplog_loguru.text
