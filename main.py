# main.py
import argparse
import json
import logging
import os
import sys

from benchmark import BenchmarkRunner, save_results
from cache import CacheSimError, Geometry
from simulator import Simulator
from tracefile import TraceFormatError, read_trace
from visualize import plot_cumulative_hit_rate, plot_hit_miss_rate

LOGGER = logging.getLogger("csim")

DEFAULT_CONFIG = "config.json"
HITMISS_PLOT = "hit_miss_rate.png"
TIMELINE_PLOT = "cumulative_hit_rate.png"


def load_config(path=None):
    """
    Read the JSON config. With no explicit path a missing config.json is
    fine and gives an empty config.
    """
    if path is None:
        if not os.path.exists(DEFAULT_CONFIG):
            return {}
        path = DEFAULT_CONFIG
    with open(path, "r") as f:
        return json.load(f)


def resolve_geometry(args, cfg):
    """Command-line flags win over the config file. Returns None if a value is missing."""
    cache_cfg = cfg.get("cache", {})
    s = args.s if args.s is not None else cache_cfg.get("set_index_bits")
    E = args.E if args.E is not None else cache_cfg.get("lines_per_set")
    b = args.b if args.b is not None else cache_cfg.get("block_offset_bits")
    if s is None or E is None or b is None:
        return None
    return Geometry(set_index_bits=s, lines_per_set=E, block_offset_bits=b)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="csim",
        usage="%(prog)s [-hv] -s <s> -E <E> -b <b> -t <tracefile>",
        description="Count the hits, misses and evictions of an LRU set-associative cache on a memory trace.")
    parser.add_argument("-v", dest="verbose", action="store_true", help="print one line per trace record")
    parser.add_argument("-s", type=int, help="number of set index bits (2^s sets)")
    parser.add_argument("-E", type=int, help="number of lines per set")
    parser.add_argument("-b", type=int, help="number of block offset bits (2^b byte blocks)")
    parser.add_argument("-t", dest="trace", help="trace file to replay")
    parser.add_argument("--config", help=f"JSON config file (default: {DEFAULT_CONFIG} if present)")
    parser.add_argument("--results", help="directory to write results.json into")
    parser.add_argument("--plot", help="directory to write plots into")
    parser.add_argument("--strict", action="store_true",
                        help="fail on malformed records and unknown access kinds instead of skipping them")
    parser.add_argument("--benchmark", action="store_true",
                        help="run the synthetic benchmark from the config instead of a trace")
    return parser


def print_summary(counters):
    print(f"hits:{counters.hits} misses:{counters.misses} evictions:{counters.evictions}")


def run_trace(args, cfg, geometry):
    sim_cfg = cfg.get("simulation", {})
    trace = args.trace or sim_cfg.get("trace")
    verbose = args.verbose or sim_cfg.get("verbose", False)
    strict = args.strict or sim_cfg.get("on_unrecognized", "skip") == "raise"

    if verbose:
        print()
        print("Verbose mode enabled.")
        print(f"Trace filename: {trace}")
        print(f"Number of sets: {geometry.num_sets}")
        print()

    sim = Simulator(geometry, verbose=verbose, keep_history=bool(args.plot))
    counters = sim.run(read_trace(trace, strict=strict),
                       on_unrecognized="raise" if strict else "skip")
    print_summary(counters)

    if args.results:
        summary = {"trace": trace, "s": geometry.set_index_bits, "E": geometry.lines_per_set,
                   "b": geometry.block_offset_bits, **counters.as_dict(), "hit_rate": counters.hit_rate}
        path = save_results(summary, {"results_dir": args.results})
        LOGGER.info("Results saved to: %s", path)
    if args.plot:
        plot_hit_miss_rate(counters, os.path.join(args.plot, HITMISS_PLOT))
        plot_cumulative_hit_rate(sim.history, os.path.join(args.plot, TIMELINE_PLOT))
        LOGGER.info("Plots saved in %s", args.plot)
    return 0


def run_benchmark(args, cfg):
    out_cfg = dict(cfg.get("output", {}))
    if args.results:
        out_cfg["results_dir"] = args.results
    if args.plot:
        out_cfg["hitmiss_plot"] = os.path.join(args.plot, HITMISS_PLOT)
        out_cfg["timeline_plot"] = os.path.join(args.plot, TIMELINE_PLOT)

    runner = BenchmarkRunner(cfg)
    print("Starting benchmark with config:", cfg["benchmark"])
    summary, outcomes = runner.run()
    print_summary(runner.counters)
    results_path = save_results(summary, out_cfg)
    print("Benchmark Summary:", summary)
    print("Results saved to:", results_path)

    plot_hit_miss_rate(runner.counters, out_cfg.get("hitmiss_plot", os.path.join("results", HITMISS_PLOT)))
    plot_cumulative_hit_rate(outcomes, out_cfg.get("timeline_plot", os.path.join("results", TIMELINE_PLOT)))
    print("Plots saved in", os.path.dirname(out_cfg.get("hitmiss_plot", os.path.join("results", HITMISS_PLOT))) or ".")
    return 0


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")

    try:
        cfg = load_config(args.config)
        geometry = resolve_geometry(args, cfg)
        if args.benchmark:
            if "benchmark" not in cfg:
                LOGGER.error("config has no 'benchmark' section")
                return 1
            # flags override the cache section for the benchmark as well
            if geometry is not None:
                cfg = {**cfg, "cache": {"set_index_bits": geometry.set_index_bits,
                                        "lines_per_set": geometry.lines_per_set,
                                        "block_offset_bits": geometry.block_offset_bits}}
            return run_benchmark(args, cfg)

        if geometry is None or not (args.trace or cfg.get("simulation", {}).get("trace")):
            parser.print_usage()
            return 1
        return run_trace(args, cfg, geometry)
    except (CacheSimError, TraceFormatError, OSError, json.JSONDecodeError) as e:
        LOGGER.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
