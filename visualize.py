# visualize.py
import os
import numpy as np
import matplotlib.pyplot as plt


def _ensure_parent(outpath):
    parent = os.path.dirname(outpath)
    if parent:
        os.makedirs(parent, exist_ok=True)


def plot_cumulative_hit_rate(outcomes, outpath):
    """outcomes: one bool per memory access, True for a hit."""
    _ensure_parent(outpath)
    hits = np.asarray(outcomes, dtype=float)
    running = np.cumsum(hits) / np.arange(1, len(hits) + 1) if len(hits) else hits
    plt.figure(figsize=(8,4))
    plt.plot(running, linewidth=0.8)
    plt.title(f"Cumulative Hit Rate ({len(hits)} accesses)")
    plt.xlabel("Access Index")
    plt.ylabel("Hit Rate")
    plt.ylim(0.0, 1.0)
    plt.grid(True)
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()


def plot_hit_miss_rate(counters, outpath):
    _ensure_parent(outpath)
    plt.figure(figsize=(4,4))
    labels = ['Hit', 'Miss', 'Miss + Eviction']
    sizes = [counters.hits, counters.misses - counters.evictions, counters.evictions]
    if sum(sizes) == 0:
        plt.text(0.5, 0.5, "no accesses", ha="center", va="center")
        plt.axis("off")
    else:
        plt.pie(sizes, labels=labels, autopct='%1.1f%%')
    plt.title("Cache Hit/Miss Rate")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
