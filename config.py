# config.py
import json
from dataclasses import dataclass, field

from addressing import ADDRESS_BITS, floor_log2, is_power_of_two

UINT32_MAX = (1 << 32) - 1


class ConfigError(ValueError):
    """Raised when a cache configuration cannot be simulated."""


@dataclass
class CacheConfig:
    sets: int = 256
    assoc: int = 1
    hit_time: int = 1

    @classmethod
    def from_dict(cls, d, default=None):
        default = default or cls()
        return cls(
            sets=d.get("sets", default.sets),
            assoc=d.get("assoc", default.assoc),
            hit_time=d.get("hit_time", default.hit_time),
        )


@dataclass
class HierarchyConfig:
    """Configuration of the I$ / D$ / L2 hierarchy and main memory."""
    icache: CacheConfig = field(default_factory=lambda: CacheConfig(sets=256, assoc=2, hit_time=2))
    dcache: CacheConfig = field(default_factory=lambda: CacheConfig(sets=256, assoc=4, hit_time=2))
    l2cache: CacheConfig = field(default_factory=lambda: CacheConfig(sets=1024, assoc=8, hit_time=10))
    block_size: int = 64
    inclusive: bool = False
    memory_latency: int = 100

    @classmethod
    def from_dict(cls, cfg):
        """
        Build from the top-level config dict (its "cache" and "memory"
        sections). Missing keys take the defaults.
        """
        base = cls()
        cache_cfg = cfg.get("cache", {})
        mem_cfg = cfg.get("memory", {})
        return cls(
            icache=CacheConfig.from_dict(cache_cfg.get("icache", {}), base.icache),
            dcache=CacheConfig.from_dict(cache_cfg.get("dcache", {}), base.dcache),
            l2cache=CacheConfig.from_dict(cache_cfg.get("l2cache", {}), base.l2cache),
            block_size=cache_cfg.get("block_size", base.block_size),
            inclusive=cache_cfg.get("inclusive", base.inclusive),
            memory_latency=mem_cfg.get("latency_cycles", base.memory_latency),
        )

    def levels(self):
        return {"icache": self.icache, "dcache": self.dcache, "l2cache": self.l2cache}

    def validate(self):
        """
        Check every value and normalise associativity 0 to 1.
        Raises ConfigError on the first problem found.
        """
        _check_uint("block_size", self.block_size)
        if not is_power_of_two(self.block_size):
            raise ConfigError("block_size must be a power of two, got %d" % self.block_size)
        _check_uint("memory_latency", self.memory_latency)
        if not isinstance(self.inclusive, bool):
            raise ConfigError("inclusive must be true or false, got %r" % (self.inclusive,))

        offset_bits = floor_log2(self.block_size)
        for name, level in self.levels().items():
            _check_uint(name + ".sets", level.sets)
            if not is_power_of_two(level.sets):
                raise ConfigError("%s.sets must be a power of two, got %d" % (name, level.sets))
            _check_uint(name + ".assoc", level.assoc)
            if level.assoc == 0:
                level.assoc = 1
            _check_uint(name + ".hit_time", level.hit_time)
            tag_bits = ADDRESS_BITS - floor_log2(level.sets) - offset_bits
            if tag_bits < 0:
                raise ConfigError("%s: index and offset need %d bits, more than a %d-bit address"
                                  % (name, ADDRESS_BITS - tag_bits, ADDRESS_BITS))
        return self


def _check_uint(name, value):
    # bool is an int subclass but never a sensible count
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError("%s must be an integer, got %r" % (name, value))
    if value < 0 or value > UINT32_MAX:
        raise ConfigError("%s must be in [0, %d], got %d" % (name, UINT32_MAX, value))


def load_config(path="config.json"):
    with open(path, "r") as f:
        return json.load(f)
