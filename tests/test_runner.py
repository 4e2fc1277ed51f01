import json

import numpy as np
import pytest

from runner import TraceRunner
from simulator import AccessKind, ConfigurationError

LOAD = AccessKind.DATA_LOAD
STORE = AccessKind.DATA_STORE


def small_cfg(**output):
    return {
        "cache": {"size": 8, "block_size": 4, "associativity": 1},
        "output": dict({"timeline_window": 4}, **output),
    }


def test_run_summary_and_timeline():
    runner = TraceRunner(small_cfg())
    records = [(0x0, STORE), (0x0, LOAD), (0x4, LOAD), (0x8, LOAD),
               (0x0, LOAD), (0x4, LOAD), (0x8, STORE), (0xC, LOAD),
               (0xC, AccessKind.INSTRUCTION_FETCH), (0x6, LOAD)]
    summary, timeline = runner.run(records)

    assert summary["total_accesses"] == 10
    assert summary["instruction"]["accesses"] == 1
    assert summary["data"]["accesses"] == 9
    # windows: misses 3 of 4, 3 of 4, 1 of 2
    np.testing.assert_allclose(timeline, [0.75, 0.75, 0.5])
    assert summary["data"]["misses"] + summary["instruction"]["misses"] == 7
    # the dirty line from the store to 0x8 is written back by the flush
    assert summary["data"]["copies_back"] == 2
    assert summary["traffic"]["copies_back"] == 2
    assert summary["resident_lines"] == 2
    assert summary["settings"]["block_size"] == 4
    assert summary["banks"] == [{"size": 8, "block_size": 4, "associativity": 1,
                                 "n_sets": 2, "resident_lines": 2, "capacity_lines": 2}]
    assert 0.0 <= summary["data"]["hit_rate"] <= 1.0


def test_run_empty_trace():
    summary, timeline = TraceRunner(small_cfg()).run([])
    assert summary["total_accesses"] == 0
    assert len(timeline) == 0
    assert summary["data"]["miss_rate"] == 0.0


def test_run_reads_trace_file(tmp_path):
    trace = tmp_path / "run.trace"
    trace.write_text("0 0\n0 0\n1 4\n")
    cfg = small_cfg()
    cfg["trace"] = {"path": str(trace)}
    summary, _ = TraceRunner(cfg).run()
    assert summary["total_accesses"] == 3
    assert summary["data"]["misses"] == 2


def test_run_synthetic_trace():
    cfg = {
        "cache": {"size": 1024, "block_size": 16, "associativity": 2},
        "trace": {"num_accesses": 3000, "working_set_kb": 4, "random_seed": 1},
        "output": {"timeline_window": 1000},
    }
    summary, timeline = TraceRunner(cfg).run()
    assert summary["total_accesses"] == 3000
    assert len(timeline) == 3
    assert summary["instruction"]["accesses"] + summary["data"]["accesses"] == 3000
    assert summary["resident_lines"] <= 1024 // 16


def test_bad_cache_config_fails_early():
    with pytest.raises(ConfigurationError):
        TraceRunner({"cache": {"size": 24, "block_size": 4, "associativity": 1}})


def test_save_results(tmp_path):
    runner = TraceRunner(small_cfg())
    summary, _ = runner.run([(0x0, LOAD)])
    path = runner.save_results(summary, {"results_dir": str(tmp_path / "out")})
    assert path == str(tmp_path / "out" / "results.json")
    with open(path) as f:
        saved = json.load(f)
    assert saved["data"]["misses"] == 1
    assert saved["settings"]["write_back"] is True
