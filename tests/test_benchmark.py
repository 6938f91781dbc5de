import json

import numpy as np
import pytest

from benchmark import BenchmarkRunner, TraceGenerator, save_results
from simulator import EventKind


def make_cfg(**bench):
    cfg = {
        "cache": {"set_index_bits": 4, "lines_per_set": 4, "block_offset_bits": 6},
        "benchmark": {"random_seed": 1, "working_set_kb": 64, "num_requests": 2000,
                      "num_threads": 4, "read_ratio": 0.7, "modify_ratio": 0.5,
                      "access_pattern": "mixed"},
    }
    cfg["benchmark"].update(bench)
    return cfg


def test_sequential_pattern_wraps():
    gen = TraceGenerator(num_blocks=4, block_size=16, access_pattern="sequential",
                         read_ratio=1.0, rng=np.random.default_rng(0))
    events = gen.generate(6) + gen.generate(3)
    assert [e.address for e in events] == [0, 16, 32, 48, 0, 16, 32, 48, 0]
    assert all(e.kind is EventKind.LOAD for e in events)


def test_random_pattern_stays_in_working_set():
    gen = TraceGenerator(num_blocks=10, block_size=64, access_pattern="random",
                         rng=np.random.default_rng(0))
    addresses = [e.address for e in gen.generate(500)]
    assert min(addresses) >= 0
    assert max(addresses) < 10 * 64
    assert all(a % 64 == 0 for a in addresses)


def test_kind_mix():
    rng = np.random.default_rng(3)
    modifies = TraceGenerator(8, 8, "sequential", read_ratio=0.0, modify_ratio=1.0, rng=rng)
    assert {e.kind for e in modifies.generate(100)} == {EventKind.MODIFY}
    stores = TraceGenerator(8, 8, "sequential", read_ratio=0.0, modify_ratio=0.0, rng=rng)
    assert {e.kind for e in stores.generate(100)} == {EventKind.STORE}
    mixed = TraceGenerator(8, 8, "mixed", read_ratio=0.5, modify_ratio=0.5, rng=rng)
    assert {e.kind for e in mixed.generate(2000)} == {EventKind.LOAD, EventKind.STORE, EventKind.MODIFY}


def test_unknown_pattern():
    with pytest.raises(ValueError):
        TraceGenerator(8, 8, access_pattern="strided")


def test_runner_summary_is_consistent():
    runner = BenchmarkRunner(make_cfg())
    summary, outcomes = runner.run()
    assert summary["total_requests"] == 2000
    assert summary["hits"] + summary["misses"] == len(outcomes)
    assert summary["hits"] == sum(outcomes)
    assert summary["evictions"] <= summary["misses"]
    assert 0.0 <= summary["hit_rate"] <= 1.0


def test_runner_is_deterministic_for_a_seed():
    first, _ = BenchmarkRunner(make_cfg()).run()
    second, _ = BenchmarkRunner(make_cfg()).run()
    keys = ("hits", "misses", "evictions")
    assert [first[k] for k in keys] == [second[k] for k in keys]


def test_working_set_that_fits_only_misses_once_per_block():
    # 16 sets x 4 lines x 64 B = 4 KiB cache, 1 KiB working set = 16 blocks
    cfg = make_cfg(working_set_kb=1, num_requests=160, num_threads=1,
                   read_ratio=1.0, access_pattern="sequential")
    summary, _ = BenchmarkRunner(cfg).run()
    assert (summary["hits"], summary["misses"], summary["evictions"]) == (144, 16, 0)


def test_save_results(tmp_path):
    path = save_results({"hits": 1}, {"results_dir": str(tmp_path / "out")})
    with open(path) as f:
        assert json.load(f) == {"hits": 1}
