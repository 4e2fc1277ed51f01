# visualize.py
import os
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt


def _ensure_dir(outpath):
    dirname = os.path.dirname(outpath)
    if dirname:
        os.makedirs(dirname, exist_ok=True)


def plot_hit_miss_rate(summary, outpath):
    _ensure_dir(outpath)
    streams = ["instruction", "data"]
    hits = [summary[s]["hit_rate"] for s in streams]
    misses = [summary[s]["miss_rate"] for s in streams]
    plt.figure(figsize=(5, 4))
    plt.bar(streams, hits, label="Hit")
    plt.bar(streams, misses, bottom=hits, label="Miss")
    plt.title("Cache Hit/Miss Rate")
    plt.ylabel("Fraction of accesses")
    plt.ylim(0, 1)
    plt.legend()
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()


def plot_traffic(summary, outpath):
    _ensure_dir(outpath)
    labels = ["Demand fetch", "Copies back"]
    values = [summary["traffic"]["demand_fetches"], summary["traffic"]["copies_back"]]
    plt.figure(figsize=(5, 4))
    plt.bar(labels, values, color=["tab:blue", "tab:orange"])
    plt.title("Memory Traffic")
    plt.ylabel("Transfers")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()


def plot_miss_rate_timeline(timeline, window, outpath):
    _ensure_dir(outpath)
    plt.figure(figsize=(8, 4))
    plt.plot(range(1, len(timeline) + 1), timeline, marker='.', linewidth=0.5)
    plt.title(f"Miss Rate per {window} Accesses")
    plt.xlabel("Window")
    plt.ylabel("Miss rate")
    plt.grid(True)
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
