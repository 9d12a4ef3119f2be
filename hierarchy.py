# hierarchy.py
import logging

from addressing import ADDRESS_MASK
from cache import CacheLevel
from config import HierarchyConfig

logger = logging.getLogger(__name__)

INSTRUCTION = "i"
DATA = "d"


class MainMemory:
    """Root of the hierarchy: every access costs a fixed latency."""

    def __init__(self, latency):
        self.latency = latency
        self.accesses = 0

    def access(self, addr, now):
        self.accesses += 1
        return self.latency


class CacheHierarchy:
    """
    Split L1 (instruction + data) over a shared L2 over main memory.

    Owns the logical clock. Only the two first-level entry points advance
    it; the L2 and memory see the value set by the triggering access.
    """

    def __init__(self, config: HierarchyConfig = None):
        self.config = config or HierarchyConfig()
        self.clock = 0
        self.back_invalidations = 0
        self.icache = None
        self.dcache = None
        self.l2cache = None
        self.memory = None

    def initialize(self, config: HierarchyConfig = None):
        """(Re)build every level from the config; all ways empty, counters and clock at zero."""
        if config is not None:
            self.config = config
        cfg = self.config.validate()

        self.clock = 0
        self.back_invalidations = 0
        self.memory = MainMemory(cfg.memory_latency)
        on_evict = self._back_invalidate if cfg.inclusive else None
        self.l2cache = CacheLevel("l2cache", cfg.l2cache.sets, cfg.l2cache.assoc,
                                  cfg.l2cache.hit_time, cfg.block_size,
                                  next_level=self.memory, on_evict=on_evict)
        self.icache = CacheLevel("icache", cfg.icache.sets, cfg.icache.assoc,
                                 cfg.icache.hit_time, cfg.block_size, next_level=self.l2cache)
        self.dcache = CacheLevel("dcache", cfg.dcache.sets, cfg.dcache.assoc,
                                 cfg.dcache.hit_time, cfg.block_size, next_level=self.l2cache)
        logger.info("initialized %r, %r, %r (inclusive=%s, memory=%d cycles)",
                    self.icache, self.dcache, self.l2cache, cfg.inclusive, cfg.memory_latency)
        return self

    def instruction_access(self, addr):
        return self._first_level_access(self.icache, addr)

    def data_access(self, addr):
        return self._first_level_access(self.dcache, addr)

    def access(self, addr, kind):
        if kind == INSTRUCTION:
            return self.instruction_access(addr)
        if kind == DATA:
            return self.data_access(addr)
        raise ValueError("unknown access kind %r" % (kind,))

    def _first_level_access(self, level, addr):
        if level is None:
            raise RuntimeError("CacheHierarchy.initialize() has not been called")
        if not 0 <= addr <= ADDRESS_MASK:
            raise ValueError("address %r is not a 32-bit unsigned value" % (addr,))
        self.clock += 1
        return level.access(addr, self.clock)

    def _back_invalidate(self, addr):
        # keeps L1 contents a subset of L2 when the L2 is inclusive
        for level in (self.icache, self.dcache):
            if level.store.invalidate(addr):
                self.back_invalidations += 1
                logger.debug("back-invalidated %#010x from %s", addr, level.name)

    def stats(self):
        if self.icache is None:
            raise RuntimeError("CacheHierarchy.initialize() has not been called")
        return {
            "icache": self.icache.stats,
            "dcache": self.dcache.stats,
            "l2cache": self.l2cache.stats,
            "memory_accesses": self.memory.accesses,
            "back_invalidations": self.back_invalidations,
            "clock": self.clock,
        }
