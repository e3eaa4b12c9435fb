"""Unit tests for gridmerge.config module."""

import json
import unittest
import warnings
from pathlib import Path
from tempfile import TemporaryDirectory

from gridmerge.config import EstimatorConfig, MergeConfig, load_config


class TestEstimatorConfig(unittest.TestCase):
    """Test suite for EstimatorConfig."""

    def test_defaults(self):
        cfg = EstimatorConfig()
        self.assertEqual(cfg.confidence, 1.0)
        self.assertEqual(cfg.ratio, 0.75)
        self.assertFalse(cfg.rigid)

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            EstimatorConfig(n_features=0)
        with self.assertRaises(ValueError):
            EstimatorConfig(ratio=1.5)
        with self.assertRaises(ValueError):
            EstimatorConfig(ransac_threshold=0.0)
        with self.assertRaises(ValueError):
            EstimatorConfig(confidence=-0.1)
        with self.assertRaises(ValueError):
            EstimatorConfig(min_matches=2)

    def test_frozen(self):
        cfg = EstimatorConfig()
        with self.assertRaises(AttributeError):
            cfg.confidence = 0.5


class TestMergeConfig(unittest.TestCase):
    """Test suite for MergeConfig."""

    def test_negative_tolerance(self):
        with self.assertRaises(ValueError):
            MergeConfig(planar_tolerance=-1.0)

    def test_large_tolerance_warns(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            MergeConfig(planar_tolerance=0.1)
        self.assertEqual(len(caught), 1)
        self.assertTrue(issubclass(caught[0].category, UserWarning))

    def test_from_dict(self):
        cfg = MergeConfig.from_dict(
            {"planar_tolerance": 1e-6, "estimator": {"confidence": 0.5, "rigid": True}}
        )
        self.assertEqual(cfg.planar_tolerance, 1e-6)
        self.assertEqual(cfg.estimator.confidence, 0.5)
        self.assertTrue(cfg.estimator.rigid)
        self.assertEqual(cfg.estimator.n_features, 1500)

    def test_from_dict_unknown_keys(self):
        with self.assertRaises(ValueError):
            MergeConfig.from_dict({"tolerance": 1e-6})
        with self.assertRaises(ValueError):
            MergeConfig.from_dict({"estimator": {"features": 10}})

    def test_dict_round_trip(self):
        cfg = MergeConfig.from_dict({"estimator": {"ratio": 0.6}})
        self.assertEqual(MergeConfig.from_dict(cfg.to_dict()), cfg)


class TestLoadConfig(unittest.TestCase):
    """Test suite for load_config."""

    def setUp(self):
        self.tmp = TemporaryDirectory()
        self.dir = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def test_load(self):
        path = self.dir / "merge.json"
        path.write_text(json.dumps({"estimator": {"confidence": 0.3}}))
        self.assertEqual(load_config(path).estimator.confidence, 0.3)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_config(self.dir / "missing.json")

    def test_invalid_json(self):
        path = self.dir / "bad.json"
        path.write_text("{not json")
        with self.assertRaises(ValueError):
            load_config(path)

    def test_non_object_root(self):
        path = self.dir / "list.json"
        path.write_text("[1, 2]")
        with self.assertRaises(ValueError):
            load_config(path)


if __name__ == "__main__":
    unittest.main()
