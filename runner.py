# runner.py
import os
import json
import time
import logging

import numpy as np

from simulator import configure, CacheConfig
from tracefile import read_trace, generate_trace

logger = logging.getLogger(__name__)


class TraceRunner:
    """Replays one trace through a freshly configured CacheModel."""

    def __init__(self, cfg):
        self.cfg = cfg
        self.config = CacheConfig.from_dict(cfg.get("cache", {}))
        self.model = configure(self.config)
        self.trace_cfg = cfg.get("trace", {})
        self.timeline_window = max(1, int(cfg.get("output", {}).get("timeline_window", 1000)))

    def _records(self):
        path = self.trace_cfg.get("path")
        if path:
            logger.info("Reading trace from %s", path)
            return read_trace(path, strict=self.trace_cfg.get("strict", False))
        logger.info("No trace path configured, generating a synthetic trace")
        return generate_trace(
            num_accesses=self.trace_cfg.get("num_accesses", 10000),
            working_set_kb=self.trace_cfg.get("working_set_kb", 64),
            block_size=self.config.block_size,
            access_pattern=self.trace_cfg.get("access_pattern", "mixed"),
            read_ratio=self.trace_cfg.get("read_ratio", 0.8),
            instruction_ratio=self.trace_cfg.get("instruction_ratio", 0.3),
            random_seed=self.trace_cfg.get("random_seed", None),
        )

    def run(self, records=None):
        """
        Feed every record to the model, then flush.
        Returns (summary, timeline) where timeline holds the miss rate of each
        window of timeline_window accesses.
        """
        if records is None:
            records = self._records()
        model = self.model
        stats = model.stats
        window = self.timeline_window
        samples = [0]

        start = time.time()
        count = 0
        for address, kind in records:
            model.access(address, kind)
            count += 1
            if count % window == 0:
                samples.append(stats.instruction.misses + stats.data.misses)
        flushed = model.flush()
        end = time.time()

        if count % window:
            samples.append(stats.instruction.misses + stats.data.misses)
        misses = np.diff(np.asarray(samples, dtype=np.int64))
        sizes = np.full(len(misses), window, dtype=np.int64)
        if count % window:
            sizes[-1] = count % window
        timeline = misses / sizes if len(sizes) else np.zeros(0)

        logger.info("Replayed %d accesses, flushed %d dirty lines", count, flushed)
        summary = self.summarize(count, end - start)
        return summary, timeline

    def summarize(self, total, duration):
        stats = self.model.stats
        return {
            "settings": self.config.as_dict(),
            "total_accesses": total,
            "instruction": dict(stats.instruction.as_dict(),
                                miss_rate=stats.instruction.miss_rate,
                                hit_rate=stats.instruction.hit_rate),
            "data": dict(stats.data.as_dict(),
                         miss_rate=stats.data.miss_rate,
                         hit_rate=stats.data.hit_rate),
            "traffic": {
                "demand_fetches": stats.demand_fetches,
                "copies_back": stats.copies_back,
            },
            "resident_lines": self.model.resident_lines,
            "banks": [bank.geometry() for bank in self.model.banks],
            "accesses_per_sec": total / duration if duration > 0 else 0,
            "duration_s": duration,
        }

    def save_results(self, summary, out_cfg):
        results_dir = out_cfg.get("results_dir", "results")
        os.makedirs(results_dir, exist_ok=True)
        path = os.path.join(results_dir, out_cfg.get("results_file", "results.json"))
        with open(path, "w") as f:
            json.dump(summary, f, indent=2)
        return path
