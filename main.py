# main.py
import argparse
import logging
import sys

from benchmark import TraceError, TraceRunner
from config import ConfigError, load_config
from visualize import LEVELS, plot_latency_distribution, plot_miss_rates


def format_stats(summary):
    lines = ["%-8s %12s %12s %10s %14s %10s" % ("level", "refs", "misses", "miss rate",
                                                 "penalties", "avg time")]
    for name in LEVELS:
        s = summary[name]
        lines.append("%-8s %12d %12d %9.2f%% %14d %10.2f" % (
            name, s["refs"], s["misses"], 100.0 * s["miss_rate"],
            s["penalties"], s["avg_access_time"]))
    return "\n".join(lines)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Two-level cache hierarchy simulator")
    parser.add_argument("--config", default="config.json", help="JSON configuration file")
    parser.add_argument("--trace", help="trace file (overrides benchmark.trace)")
    parser.add_argument("--no-plots", action="store_true", help="skip writing plots")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s: %(name)s: %(message)s")

    cfg = load_config(args.config)
    if args.trace:
        cfg.setdefault("benchmark", {})["trace"] = args.trace
    try:
        runner = TraceRunner(cfg)
    except ConfigError as e:
        print("Invalid configuration:", e, file=sys.stderr)
        return 2

    print("Starting simulation with config:", cfg.get("cache", {}))
    try:
        summary, latencies = runner.run()
    except (TraceError, OSError) as e:
        print("Invalid trace:", e, file=sys.stderr)
        return 2
    out_cfg = cfg.get("output", {})
    results_path = runner.save_results(summary, out_cfg)
    print(format_stats(summary))
    print("Total accesses: %d, total cycles: %d, average latency: %.2f cycles" % (
        summary["total_accesses"], summary["total_cycles"], summary["avg_latency_cycles"]))
    if summary["back_invalidations"]:
        print("Back-invalidations:", summary["back_invalidations"])
    print("Results saved to:", results_path)

    if not args.no_plots:
        latency_plot = out_cfg.get("latency_plot", "results/latency_distribution.png")
        missrate_plot = out_cfg.get("missrate_plot", "results/miss_rates.png")
        plot_latency_distribution(latencies, summary["avg_latency_cycles"], latency_plot)
        plot_miss_rates(summary, missrate_plot)
        print("Plots saved to:", latency_plot, missrate_plot)
    return 0


if __name__ == "__main__":
    sys.exit(main())
