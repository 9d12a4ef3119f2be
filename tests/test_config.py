import json
import os
import tempfile
import unittest

from config import CacheConfig, ConfigError, HierarchyConfig, load_config


class TestHierarchyConfig(unittest.TestCase):

    def test_defaults_are_valid(self):
        cfg = HierarchyConfig().validate()
        self.assertEqual(cfg.block_size, 64)
        self.assertFalse(cfg.inclusive)

    def test_from_dict_fills_missing_keys(self):
        cfg = HierarchyConfig.from_dict({
            "cache": {"icache": {"sets": 32}, "block_size": 16, "inclusive": True},
            "memory": {"latency_cycles": 250},
        })
        self.assertEqual(cfg.icache, CacheConfig(sets=32, assoc=2, hit_time=2))
        self.assertEqual(cfg.l2cache.sets, 1024)
        self.assertEqual(cfg.block_size, 16)
        self.assertTrue(cfg.inclusive)
        self.assertEqual(cfg.memory_latency, 250)

    def test_zero_associativity_becomes_one(self):
        cfg = HierarchyConfig(dcache=CacheConfig(sets=8, assoc=0, hit_time=1)).validate()
        self.assertEqual(cfg.dcache.assoc, 1)

    def test_rejects_non_power_of_two_sets(self):
        with self.assertRaises(ConfigError):
            HierarchyConfig(l2cache=CacheConfig(sets=96, assoc=4, hit_time=10)).validate()
        with self.assertRaises(ConfigError):
            HierarchyConfig(icache=CacheConfig(sets=0, assoc=1, hit_time=1)).validate()

    def test_rejects_non_power_of_two_block_size(self):
        with self.assertRaises(ConfigError):
            HierarchyConfig(block_size=48).validate()

    def test_rejects_negative_tag_width(self):
        with self.assertRaises(ConfigError):
            HierarchyConfig(l2cache=CacheConfig(sets=1 << 20, assoc=1, hit_time=1),
                            block_size=1 << 13).validate()

    def test_rejects_bad_latencies(self):
        with self.assertRaises(ConfigError):
            HierarchyConfig(memory_latency=-1).validate()
        with self.assertRaises(ConfigError):
            HierarchyConfig(memory_latency=1 << 32).validate()
        with self.assertRaises(ConfigError):
            HierarchyConfig(icache=CacheConfig(sets=8, assoc=1, hit_time=1.5)).validate()
        with self.assertRaises(ConfigError):
            HierarchyConfig(icache=CacheConfig(sets=8, assoc=1, hit_time=True)).validate()

    def test_rejects_non_bool_inclusive(self):
        cfg = HierarchyConfig.from_dict({"cache": {"inclusive": "false"}})
        with self.assertRaises(ConfigError):
            cfg.validate()
        with self.assertRaises(ConfigError):
            HierarchyConfig(inclusive=1).validate()
        self.assertTrue(HierarchyConfig.from_dict({"cache": {"inclusive": True}}).validate().inclusive)

    def test_config_error_is_value_error(self):
        self.assertTrue(issubclass(ConfigError, ValueError))


class TestLoadConfig(unittest.TestCase):

    def test_load_shipped_config(self):
        path = os.path.join(os.path.dirname(__file__), "..", "config.json")
        cfg = HierarchyConfig.from_dict(load_config(path)).validate()
        self.assertEqual(cfg.l2cache.assoc, 8)

    def test_load_roundtrip(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "cfg.json")
            with open(path, "w") as f:
                json.dump({"memory": {"latency_cycles": 7}}, f)
            self.assertEqual(HierarchyConfig.from_dict(load_config(path)).memory_latency, 7)


if __name__ == "__main__":
    unittest.main()
