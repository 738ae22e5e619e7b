"""Tests for sequential and multi-process chunk dispatch."""

import os

import numpy as np
import pytest

from bgdata.chunked.dispatch import ChunkFailure, check_n_cores, dispatch_chunks
from bgdata.chunked.executor import ChunkTask
from bgdata.errors import ChunkExecutionError, InvalidConfiguration
from bgdata.io import InMemoryMatrix


def _task(fn, n_cols: int = 8, chunk_size: int = 1) -> ChunkTask:
    # Column k holds the value k, so a chunk knows which columns it covers
    data = np.tile(np.arange(n_cols, dtype=np.float64), (4, 1))
    return ChunkTask(
        handle=InMemoryMatrix(data),
        rows=np.arange(4),
        cols=np.arange(n_cols),
        chunk_by=1,
        chunk_size=chunk_size,
        fn=fn,
    )


def column_ids(chunk):
    return chunk[0].astype(int)


def fail_from_third_column(chunk):
    if chunk[0, 0] >= 2:
        raise ValueError(f"bad column {int(chunk[0, 0])}")
    return chunk[0]


def fail_on_third_column(chunk):
    if chunk[0, 0] == 2:
        raise KeyError("column 2")
    return chunk[0]


def worker_pid(chunk):
    return os.getpid()


@pytest.mark.tier0
class TestSequentialDispatch:
    """n_cores=1 runs chunks in-process, in order."""

    def test_results_in_chunk_order(self):
        results = dispatch_chunks(_task(column_ids, chunk_size=3), 3)
        assert [r.tolist() for r in results] == [[0, 1, 2], [3, 4, 5], [6, 7]]

    def test_no_chunks(self):
        assert dispatch_chunks(_task(column_ids), 0) == []

    def test_fails_fast(self):
        seen = []

        def fn(chunk):
            seen.append(int(chunk[0, 0]))
            return fail_from_third_column(chunk)

        with pytest.raises(ChunkExecutionError) as exc_info:
            dispatch_chunks(_task(fn), 8)

        err = exc_info.value
        assert seen == [0, 1, 2]
        assert err.chunk_index == 2
        assert err.n_chunks == 8
        assert err.error_type == "ValueError"
        assert str(err) == "in chunk 3 of 8: bad column 2"
        assert isinstance(err.__cause__, ValueError)

    def test_runs_in_calling_process(self):
        assert dispatch_chunks(_task(worker_pid), 2) == [os.getpid()] * 2

    def test_verbose_logs_each_chunk(self, caplog_loguru):
        dispatch_chunks(_task(column_ids, chunk_size=4), 2, verbose=True)
        assert "Chunk 1 of 2 ..." in caplog_loguru.text
        assert "Chunk 2 of 2 ..." in caplog_loguru.text


@pytest.mark.tier1
class TestParallelDispatch:
    """n_cores>1 runs chunks in a worker pool."""

    def test_matches_sequential(self):
        task = _task(column_ids, n_cols=23, chunk_size=3)
        sequential = dispatch_chunks(task, 8, n_cores=1)
        parallel = dispatch_chunks(task, 8, n_cores=3)
        assert len(parallel) == 8
        for a, b in zip(sequential, parallel):
            np.testing.assert_array_equal(a, b)

    def test_runs_in_worker_processes(self):
        pids = dispatch_chunks(_task(worker_pid), 4, n_cores=2)
        assert os.getpid() not in pids
        assert len(set(pids)) <= 2

    def test_static_batches(self):
        # 8 chunks over 4 workers: two consecutive chunks per worker
        pids = dispatch_chunks(_task(worker_pid), 8, n_cores=4)
        assert pids[0] == pids[1]
        assert pids[2] == pids[3]
        assert pids[4] == pids[5]
        assert pids[6] == pids[7]

    def test_lambda_function(self):
        results = dispatch_chunks(_task(lambda c: c.sum(), chunk_size=4), 2, n_cores=2)
        assert results == [4 * 6.0, 4 * 22.0]

    def test_only_first_error_reported(self):
        with pytest.raises(ChunkExecutionError) as exc_info:
            dispatch_chunks(_task(fail_from_third_column), 8, n_cores=4)

        err = exc_info.value
        assert err.chunk_index == 2
        assert err.first_only
        assert err.error_type == "ValueError"
        assert str(err) == "in chunk 3 (only first error is shown): bad column 2"

    def test_single_failure_among_successes(self):
        with pytest.raises(ChunkExecutionError, match="only first error is shown") as e:
            dispatch_chunks(_task(fail_on_third_column), 8, n_cores=4)
        assert e.value.chunk_index == 2
        assert e.value.error_type == "KeyError"

    def test_more_cores_than_chunks(self):
        results = dispatch_chunks(_task(column_ids, chunk_size=8), 1, n_cores=4)
        assert results[0].tolist() == list(range(8))


@pytest.mark.tier0
class TestCheckNCores:
    """Tests for check_n_cores()."""

    @pytest.mark.parametrize("n_cores", [0, -2, 1.5, True, "2"])
    def test_invalid(self, n_cores):
        with pytest.raises(InvalidConfiguration, match="n_cores"):
            check_n_cores(n_cores)

    def test_valid(self):
        check_n_cores(1)
        check_n_cores(np.int64(3))

    def test_dispatch_validates(self):
        with pytest.raises(InvalidConfiguration):
            dispatch_chunks(_task(column_ids), 8, n_cores=0)


@pytest.mark.tier0
def test_chunk_failure_marker_fields():
    failure = ChunkFailure(
        chunk_index=1, error_type="ValueError", message="m", traceback="tb"
    )
    assert failure.chunk_index == 1
    assert failure.message == "m"
