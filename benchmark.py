# benchmark.py
import os
import json
import time
import logging
import threading
import numpy as np

from cache import Geometry
from simulator import AccessEvent, Counters, EventKind, Simulator

LOGGER = logging.getLogger("csim.benchmark")

ACCESS_PATTERNS = ("sequential", "random", "mixed")


class TraceGenerator:
    """
    Synthetic access traces over a working set of `num_blocks` cache blocks.
    Each generator keeps its own sequential pointer and RNG.
    """

    def __init__(self, num_blocks, block_size, access_pattern="mixed",
                 read_ratio=0.8, modify_ratio=0.0, rng=None):
        if access_pattern not in ACCESS_PATTERNS:
            raise ValueError(f"unknown access pattern {access_pattern!r}, expected one of {ACCESS_PATTERNS}")
        self.num_blocks = max(1, num_blocks)
        self.block_size = block_size
        self.access_pattern = access_pattern
        self.read_ratio = read_ratio
        self.modify_ratio = modify_ratio
        self.rng = rng if rng is not None else np.random.default_rng()
        self._seq_ptr = 0

    def _sequential_blocks(self, n):
        blocks = (self._seq_ptr + np.arange(n)) % self.num_blocks
        self._seq_ptr = int((self._seq_ptr + n) % self.num_blocks)
        return blocks

    def _generate_blocks(self, n):
        if self.access_pattern == "sequential":
            return self._sequential_blocks(n)
        elif self.access_pattern == "random":
            return self.rng.integers(0, self.num_blocks, size=n)
        else:  # mixed: mostly sequential with some random
            blocks = self._sequential_blocks(n)
            jumps = self.rng.random(n) >= 0.8
            blocks[jumps] = self.rng.integers(0, self.num_blocks, size=int(jumps.sum()))
            return blocks

    def _generate_kinds(self, n):
        # load below read_ratio, then modify, then store
        thresholds = [self.read_ratio, self.read_ratio + (1.0 - self.read_ratio) * self.modify_ratio]
        codes = np.digitize(self.rng.random(n), thresholds)
        order = (EventKind.LOAD, EventKind.MODIFY, EventKind.STORE)
        return [order[c] for c in codes]

    def generate(self, n):
        blocks = self._generate_blocks(n)
        kinds = self._generate_kinds(n)
        return [AccessEvent(kind, int(block) * self.block_size, 1)
                for kind, block in zip(kinds, blocks)]


class BenchmarkRunner:
    def __init__(self, cfg):
        self.cfg = cfg
        cache_cfg = cfg.get("cache", {})
        self.geometry = Geometry(
            set_index_bits=cache_cfg.get("set_index_bits", 4),
            lines_per_set=cache_cfg.get("lines_per_set", 4),
            block_offset_bits=cache_cfg.get("block_offset_bits", 6),
        )
        bench_cfg = cfg["benchmark"]
        self.seed_seq = np.random.SeedSequence(bench_cfg.get("random_seed", None))
        self.working_set_kb = bench_cfg.get("working_set_kb", 1024)
        # one block per cache line
        self.num_blocks = max(1, (self.working_set_kb * 1024) // self.geometry.block_size)
        self.num_requests = bench_cfg.get("num_requests", 10000)
        self.num_threads = max(1, bench_cfg.get("num_threads", 4))
        self.read_ratio = bench_cfg.get("read_ratio", 0.8)
        self.modify_ratio = bench_cfg.get("modify_ratio", 0.0)
        self.access_pattern = bench_cfg.get("access_pattern", "mixed")
        self.results_lock = threading.Lock()
        self.counters = Counters()
        self.outcomes = []

    def _worker(self, requests_per_thread, rng):
        # every worker simulates its own cache; only the totals are shared
        generator = TraceGenerator(self.num_blocks, self.geometry.block_size,
                                   self.access_pattern, self.read_ratio,
                                   self.modify_ratio, rng)
        sim = Simulator(self.geometry, keep_history=True)
        sim.run(generator.generate(requests_per_thread))

        with self.results_lock:
            self.counters = self.counters + sim.counters
            self.outcomes.extend(sim.history)

    def run(self):
        threads = []
        per_thread = self.num_requests // self.num_threads
        rngs = [np.random.default_rng(s) for s in self.seed_seq.spawn(self.num_threads)]
        LOGGER.info("running %d thread(s) x %d requests on %r",
                    self.num_threads, per_thread, self.geometry)
        start = time.time()
        for rng in rngs:
            t = threading.Thread(target=self._worker, args=(per_thread, rng))
            t.start()
            threads.append(t)
        for t in threads:
            t.join()
        end = time.time()

        total = per_thread * self.num_threads
        throughput = total / (end - start) if (end - start) > 0 else 0
        summary = {
            "total_requests": total,
            **self.counters.as_dict(),
            "hit_rate": self.counters.hit_rate,
            "throughput_ops_per_sec": throughput,
            "duration_s": end - start
        }
        return summary, self.outcomes


def save_results(summary, out_cfg):
    results_dir = out_cfg.get("results_dir", "results")
    os.makedirs(results_dir, exist_ok=True)
    path = os.path.join(results_dir, "results.json")
    with open(path, "w") as f:
        json.dump(summary, f, indent=2)
    return path
