# cache.py
import collections
import logging

from addressing import AddressLayout

logger = logging.getLogger(__name__)

# A way's slot inside one store: which set, and which position in that set.
Victim = collections.namedtuple("Victim", ["set_index", "way"])

ProbeResult = collections.namedtuple("ProbeResult", ["hit", "slot", "tag"])


class Way:
    __slots__ = ("tag", "last_used")

    def __init__(self):
        self.tag = 0
        # 0 means the way has never been filled
        self.last_used = 0

    @property
    def occupied(self):
        return self.last_used != 0

    def __repr__(self):
        return "Way(tag=%#x, last_used=%d)" % (self.tag, self.last_used)


class SetAssociativeStore:
    """
    Set-associative tag store with timestamp-based LRU approximation.
    Each set is a fixed list of `associativity` ways; a way is stamped with
    the logical clock on every hit and fill, and the smallest stamp in a set
    is the eviction candidate (empty ways carry stamp 0 and go first).
    """

    def __init__(self, num_sets, associativity, block_size):
        self.num_sets = num_sets
        self.associativity = associativity
        self.layout = AddressLayout(num_sets, block_size)
        self.sets = [[Way() for _ in range(associativity)] for _ in range(num_sets)]

    def probe(self, addr, now):
        """
        Look `addr` up. On a hit the matching way is refreshed to `now` and
        returned as the slot; on a miss the slot is the LRU victim, with
        ties going to the lowest way index.
        """
        index = self.layout.index_of(addr)
        tag = self.layout.tag_of(addr)
        ways = self.sets[index]
        victim = 0
        for i, way in enumerate(ways):
            if way.occupied and way.tag == tag:
                way.last_used = now
                return ProbeResult(True, Victim(index, i), tag)
            if way.last_used < ways[victim].last_used:
                victim = i
        return ProbeResult(False, Victim(index, victim), tag)

    def commit(self, slot, tag, now):
        """
        Install `tag` into `slot` stamped with `now`.
        Returns the address of the line that was evicted, or None if the
        way was empty.
        """
        ways = self.sets[slot.set_index]
        assert now > 0, "logical clock must be advanced before a fill"
        assert not any(w.occupied and w.tag == tag
                       for i, w in enumerate(ways) if i != slot.way), \
            "tag %#x already resident in set %d" % (tag, slot.set_index)
        way = ways[slot.way]
        evicted = None
        if way.occupied:
            evicted = self.layout.reassemble(slot.set_index, way.tag)
        way.tag = tag
        way.last_used = now
        return evicted

    def contains(self, addr):
        index = self.layout.index_of(addr)
        tag = self.layout.tag_of(addr)
        return any(w.occupied and w.tag == tag for w in self.sets[index])

    def invalidate(self, addr):
        """Drop the line holding `addr`, if any. Returns True if one was dropped."""
        index = self.layout.index_of(addr)
        tag = self.layout.tag_of(addr)
        for way in self.sets[index]:
            if way.occupied and way.tag == tag:
                way.last_used = 0
                return True
        return False

    def occupancy(self):
        return sum(1 for ways in self.sets for w in ways if w.occupied)

    def snapshot(self):
        return [[(w.tag, w.last_used) for w in ways] for ways in self.sets]


class LevelStats:
    def __init__(self, hit_time):
        self.hit_time = hit_time
        self.refs = 0
        self.misses = 0
        self.penalties = 0

    @property
    def hits(self):
        return self.refs - self.misses

    @property
    def miss_rate(self):
        return self.misses / self.refs if self.refs else 0.0

    @property
    def avg_access_time(self):
        if not self.refs:
            return 0.0
        return self.hit_time + self.penalties / self.refs

    def as_dict(self):
        return {
            "refs": self.refs,
            "misses": self.misses,
            "penalties": self.penalties,
            "miss_rate": self.miss_rate,
            "avg_access_time": self.avg_access_time,
        }


class CacheLevel:
    """
    One level of the hierarchy: a store, its counters and a hit time.
    Misses are served by `next_level`, anything with an
    ``access(addr, now) -> cycles`` method.
    """

    def __init__(self, name, num_sets, associativity, hit_time, block_size,
                 next_level=None, on_evict=None):
        self.name = name
        self.hit_time = hit_time
        self.store = SetAssociativeStore(num_sets, associativity, block_size)
        self.next_level = next_level
        self.on_evict = on_evict
        self.stats = LevelStats(hit_time)

    def access(self, addr, now):
        self.stats.refs += 1
        result = self.store.probe(addr, now)
        if result.hit:
            return self.hit_time

        self.stats.misses += 1
        penalty = self.next_level.access(addr, now)
        self.stats.penalties += penalty
        evicted = self.store.commit(result.slot, result.tag, now)
        if evicted is not None:
            logger.debug("%s: %#010x evicts %#010x from set %d",
                         self.name, addr, evicted, result.slot.set_index)
            if self.on_evict is not None:
                self.on_evict(evicted)
        return self.hit_time + penalty

    def __repr__(self):
        return "CacheLevel(%s, sets=%d, assoc=%d, hit_time=%d)" % (
            self.name, self.store.num_sets, self.store.associativity, self.hit_time)
