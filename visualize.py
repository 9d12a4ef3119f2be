# visualize.py
import os

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

LEVELS = ("icache", "dcache", "l2cache")


def _ensure_dir(outpath):
    dirname = os.path.dirname(outpath)
    if dirname:
        os.makedirs(dirname, exist_ok=True)


def plot_latency_distribution(latencies, avg_latency, outpath):
    _ensure_dir(outpath)
    plt.figure(figsize=(8,4))
    plt.plot(sorted(latencies), marker='.', linewidth=0.5)
    plt.title(f"Access Latency Distribution (mean: {avg_latency:.2f} cycles)")
    plt.xlabel("Sorted Access Index")
    plt.ylabel("Latency (cycles)")
    plt.yscale("log")
    plt.grid(True)
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()


def plot_miss_rates(summary, outpath):
    _ensure_dir(outpath)
    rates = [summary[name]["miss_rate"] for name in LEVELS]
    plt.figure(figsize=(5,4))
    bars = plt.bar(LEVELS, rates, color=["tab:blue", "tab:orange", "tab:green"])
    for bar, rate in zip(bars, rates):
        plt.annotate(f"{rate:.1%}", (bar.get_x() + bar.get_width() / 2, bar.get_height()),
                     ha="center", va="bottom")
    plt.ylim(0, 1)
    plt.title("Miss Rate per Level")
    plt.ylabel("Miss rate")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
