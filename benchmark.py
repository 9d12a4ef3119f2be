# benchmark.py
import gzip
import json
import logging
import os
import time

import numpy as np

from addressing import ADDRESS_MASK
from config import HierarchyConfig
from hierarchy import CacheHierarchy, DATA, INSTRUCTION

logger = logging.getLogger(__name__)

INSTRUCTION_SIZE = 4
TEXT_BASE = 0x00400000
DATA_BASE = 0x10000000


class TraceError(ValueError):
    pass


def _open_trace(path):
    if path.endswith(".gz"):
        return gzip.open(path, "rt")
    return open(path, "r")


def read_trace(path):
    """
    Yield (address, kind) pairs from a trace file.
    One access per line: ``i <hex address>`` or ``d <hex address>``.
    Blank lines and lines starting with '#' are skipped.
    """
    with _open_trace(path) as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            parts = line.split()
            if len(parts) != 2:
                raise TraceError("%s:%d: expected '<i|d> <address>', got %r" % (path, lineno, line))
            kind, addr = parts[0].lower(), parts[1]
            if kind not in (INSTRUCTION, DATA):
                raise TraceError("%s:%d: unknown access kind %r" % (path, lineno, parts[0]))
            try:
                addr = int(addr, 16)
            except ValueError:
                raise TraceError("%s:%d: bad address %r" % (path, lineno, parts[1])) from None
            if not 0 <= addr <= ADDRESS_MASK:
                raise TraceError("%s:%d: address %#x is not a 32-bit unsigned value" % (path, lineno, addr))
            yield addr, kind


class TraceGenerator:
    """
    Synthetic instruction/data trace.
    Instruction fetches walk a program counter and occasionally jump;
    data accesses follow `access_pattern` over a working set of blocks.
    """

    def __init__(self, rng, line_size=64, working_set_kb=1024,
                 access_pattern="mixed", instruction_ratio=0.6, jump_prob=0.05):
        if access_pattern not in ("sequential", "random", "mixed"):
            raise ValueError("unknown access pattern %r" % access_pattern)
        self.rng = rng
        self.line_size = line_size
        self.num_blocks = max(1, (working_set_kb * 1024) // line_size)
        self.access_pattern = access_pattern
        self.instruction_ratio = instruction_ratio
        self.jump_prob = jump_prob
        self._pc = TEXT_BASE
        self._seq_ptr = 0

    def _next_pc(self):
        pc = self._pc
        if self.rng.random() < self.jump_prob:
            self._pc = TEXT_BASE + INSTRUCTION_SIZE * int(self.rng.integers(0, 1 << 16))
        else:
            self._pc = pc + INSTRUCTION_SIZE
        return pc & ADDRESS_MASK

    def _next_block(self):
        if self.access_pattern == "sequential":
            return self._next_sequential()
        elif self.access_pattern == "random":
            return int(self.rng.integers(0, self.num_blocks))
        else:  # mixed: mostly sequential with some random
            if self.rng.random() < 0.8:
                return self._next_sequential()
            return int(self.rng.integers(0, self.num_blocks))

    def _next_sequential(self):
        block = self._seq_ptr
        self._seq_ptr = (block + 1) % self.num_blocks
        return block

    def _next_data(self):
        return (DATA_BASE + self._next_block() * self.line_size) & ADDRESS_MASK

    def generate(self, n):
        for _ in range(n):
            if self.rng.random() < self.instruction_ratio:
                yield self._next_pc(), INSTRUCTION
            else:
                yield self._next_data(), DATA


class TraceRunner:
    def __init__(self, cfg):
        self.cfg = cfg
        self.hierarchy_cfg = HierarchyConfig.from_dict(cfg)
        self.hierarchy = CacheHierarchy(self.hierarchy_cfg).initialize()
        bench_cfg = cfg.get("benchmark", {})
        self.trace_path = bench_cfg.get("trace")
        self.num_accesses = bench_cfg.get("num_accesses", 100000)
        self.rng = np.random.default_rng(bench_cfg.get("random_seed", None))
        self.generator = TraceGenerator(
            self.rng,
            line_size=self.hierarchy_cfg.block_size,
            working_set_kb=bench_cfg.get("working_set_kb", 1024),
            access_pattern=bench_cfg.get("access_pattern", "mixed"),
            instruction_ratio=bench_cfg.get("instruction_ratio", 0.6),
        )

    def trace(self):
        if self.trace_path:
            return read_trace(self.trace_path)
        return self.generator.generate(self.num_accesses)

    def run(self, trace=None):
        """
        Feed the trace through the hierarchy in order.
        Returns (summary dict, numpy array of per-access latencies).
        """
        trace = self.trace() if trace is None else trace
        latencies = []
        logger.info("running trace %s", self.trace_path or "<synthetic>")
        start = time.time()
        for addr, kind in trace:
            latencies.append(self.hierarchy.access(addr, kind))
        end = time.time()

        latencies = np.asarray(latencies, dtype=np.int64)
        total = len(latencies)
        stats = self.hierarchy.stats()
        summary = {
            "total_accesses": total,
            "instruction_accesses": stats["icache"].refs,
            "data_accesses": stats["dcache"].refs,
            "total_cycles": int(latencies.sum()),
            "avg_latency_cycles": float(latencies.mean()) if total else 0.0,
            "median_latency_cycles": float(np.median(latencies)) if total else 0.0,
            "p99_latency_cycles": float(np.percentile(latencies, 99)) if total else 0.0,
            "icache": stats["icache"].as_dict(),
            "dcache": stats["dcache"].as_dict(),
            "l2cache": stats["l2cache"].as_dict(),
            "memory_accesses": stats["memory_accesses"],
            "back_invalidations": stats["back_invalidations"],
            "duration_s": end - start,
            "throughput_accesses_per_sec": total / (end - start) if (end - start) > 0 else 0,
        }
        logger.info("finished %d accesses in %.3fs", total, end - start)
        return summary, latencies

    def save_results(self, summary, out_cfg):
        results_dir = out_cfg.get("results_dir", "results")
        os.makedirs(results_dir, exist_ok=True)
        path = os.path.join(results_dir, out_cfg.get("results_file", "results.json"))
        with open(path, "w") as f:
            json.dump(summary, f, indent=2)
        return path
