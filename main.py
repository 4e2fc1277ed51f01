# main.py
import argparse
import json
import logging
import os
import sys

from report import format_settings, format_stats
from runner import TraceRunner
from simulator import ConfigurationError
from tracefile import TraceFormatError
from visualize import plot_hit_miss_rate, plot_traffic, plot_miss_rate_timeline


def load_config(path="config.json"):
    if not os.path.exists(path):
        return {}
    with open(path, "r") as f:
        return json.load(f)


def build_parser():
    ap = argparse.ArgumentParser(description="Trace-driven set-associative cache simulator")
    ap.add_argument("-c", "--config", default="config.json", help="JSON config file")
    ap.add_argument("-t", "--trace", help="Trace file: lines of '<kind> <hex address>'")
    ap.add_argument("-bs", type=int, dest="block_size", help="Block size in bytes")
    ap.add_argument("-us", type=int, dest="size", help="Unified cache size in bytes")
    ap.add_argument("-is", type=int, dest="isize", help="Instruction cache size in bytes (split mode)")
    ap.add_argument("-ds", type=int, dest="dsize", help="Data cache size in bytes (split mode)")
    ap.add_argument("-a", type=int, dest="associativity", help="Associativity")
    ap.add_argument("-wb", dest="write_back", action="store_const", const=True, help="Write back")
    ap.add_argument("-wt", dest="write_back", action="store_const", const=False, help="Write through")
    ap.add_argument("-wa", dest="write_allocate", action="store_const", const=True, help="Write allocate")
    ap.add_argument("-nw", dest="write_allocate", action="store_const", const=False, help="No write allocate")
    ap.add_argument("--no-plots", action="store_true", help="Skip the matplotlib figures")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap


def apply_overrides(cfg, args):
    cache_cfg = cfg.setdefault("cache", {})
    for key in ("block_size", "size", "isize", "dsize", "associativity",
                "write_back", "write_allocate"):
        value = getattr(args, key)
        if value is not None:
            cache_cfg[key] = value
    split_flags = args.isize is not None or args.dsize is not None
    if split_flags and args.size is not None:
        raise ConfigurationError("-us cannot be combined with -is/-ds")
    if split_flags:
        cache_cfg["split"] = True
    elif args.size is not None:
        cache_cfg["split"] = False
    if args.trace:
        cfg.setdefault("trace", {})["path"] = args.trace
    return cfg


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="%(levelname)s: %(message)s")
    try:
        cfg = apply_overrides(load_config(args.config), args)
        runner = TraceRunner(cfg)
        print(format_settings(runner.config))
        summary, timeline = runner.run()
    except (ConfigurationError, TraceFormatError, OSError) as exc:
        logging.error("%s", exc)
        return 1

    out_cfg = cfg.setdefault("output", {})
    print()
    print(format_stats(runner.model.stats))
    results_path = runner.save_results(summary, out_cfg)
    print("Results saved to:", results_path)

    if not args.no_plots:
        results_dir = out_cfg.get("results_dir", "results")
        plot_hit_miss_rate(summary, out_cfg.get("hitmiss_plot", os.path.join(results_dir, "hit_miss_rate.png")))
        plot_traffic(summary, out_cfg.get("traffic_plot", os.path.join(results_dir, "traffic.png")))
        plot_miss_rate_timeline(timeline, runner.timeline_window,
                                out_cfg.get("timeline_plot", os.path.join(results_dir, "miss_rate_timeline.png")))
        print("Plots saved in", results_dir)
    runner.model.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
