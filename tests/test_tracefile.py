import logging

import pytest

from simulator import AccessKind
from tracefile import (TraceFormatError, generate_trace, parse_record,
                       read_trace, write_trace)


def test_parse_record():
    assert parse_record("0 1f\n") == (0x1F, AccessKind.DATA_LOAD)
    assert parse_record("1 0x400") == (0x400, AccessKind.DATA_STORE)
    assert parse_record("2 7ffc  # fetch") == (0x7FFC, AccessKind.INSTRUCTION_FETCH)
    assert parse_record("   \n") is None
    assert parse_record("# header") is None


@pytest.mark.parametrize("line", ["3 10", "0", "0 zz", "a 10", "0 10 20"])
def test_parse_record_rejects_malformed(line):
    with pytest.raises(TraceFormatError):
        parse_record(line)


def test_read_trace_skips_bad_lines(caplog):
    lines = ["2 0", "bogus", "", "0 10", "1 10"]
    with caplog.at_level(logging.WARNING):
        records = list(read_trace(lines))
    assert records == [
        (0x0, AccessKind.INSTRUCTION_FETCH),
        (0x10, AccessKind.DATA_LOAD),
        (0x10, AccessKind.DATA_STORE),
    ]
    assert "line 2" in caplog.text


def test_read_trace_strict():
    with pytest.raises(TraceFormatError, match="line 2"):
        list(read_trace(["0 0", "9 9"], strict=True))


def test_write_then_read_file(tmp_path):
    records = [(0x1000, AccessKind.INSTRUCTION_FETCH), (0xABC, AccessKind.DATA_STORE)]
    path = str(tmp_path / "traces" / "small.trace")
    assert write_trace(records, path) == 2
    with open(path) as f:
        assert f.read() == "2 1000\n1 abc\n"
    assert list(read_trace(path)) == records


def test_generate_trace_is_reproducible():
    first = generate_trace(num_accesses=500, random_seed=7)
    second = generate_trace(num_accesses=500, random_seed=7)
    assert first == second
    assert len(first) == 500
    kinds = {kind for _, kind in first}
    assert kinds == set(AccessKind)


def test_generate_sequential_data_loads():
    trace = generate_trace(num_accesses=10, working_set_kb=1, block_size=256,
                           access_pattern="sequential", read_ratio=1.0,
                           instruction_ratio=0.0, random_seed=0)
    base = 1024
    assert [address for address, _ in trace] == [base + (i % 4) * 256 for i in range(10)]
    assert {kind for _, kind in trace} == {AccessKind.DATA_LOAD}


def test_generate_random_stays_in_working_set():
    trace = generate_trace(num_accesses=200, working_set_kb=2, block_size=16,
                           access_pattern="random", instruction_ratio=0.0, random_seed=3)
    for address, _ in trace:
        assert 2048 <= address < 4096
        assert address % 16 == 0


def test_generate_rejects_unknown_pattern():
    with pytest.raises(ValueError):
        generate_trace(access_pattern="zigzag")
