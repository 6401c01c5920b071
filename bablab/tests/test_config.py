"""Unit tests for configuration loading and validation."""

from __future__ import annotations

import tempfile
import textwrap
import unittest
from pathlib import Path

from bablab.core.config import (
    DEFAULT_UNIVERSE,
    dump_config_to_yaml,
    load_config,
    load_config_from_yaml_text,
)
from bablab.core.research.pipeline import PipelineSettings
from bablab.core.utils.errors import ConfigLoadError

MINIMAL_YAML = textwrap.dedent("""
    data:
      start: "2015-01-01"
      end: "2024-12-31"
    """)


class TestConfig(unittest.TestCase):
    """Validate defaults, range checks and path resolution."""

    def test_defaults(self) -> None:
        config = load_config_from_yaml_text(MINIMAL_YAML, base_dir=Path("/tmp/project"))

        self.assertEqual(config.data.symbols, list(DEFAULT_UNIVERSE))
        self.assertEqual(config.data.benchmark, "SPY")
        self.assertEqual(config.strategy.beta_window, 36)
        self.assertEqual(config.strategy.n_groups, 5)
        self.assertEqual(config.strategy.risk_free_rate, 0.02)
        self.assertEqual(config.evaluation.min_regression_observations, 12)
        self.assertEqual(config.output.artifacts_dir, Path("/tmp/artifacts"))
        self.assertEqual(config.pipeline_settings(), PipelineSettings())

    def test_universe_deduplicates_and_caps(self) -> None:
        config = load_config_from_yaml_text(
            MINIMAL_YAML + "  symbols: [AAPL, ' MSFT ', AAPL, KO]\n  max_symbols: 2\n"
        )
        self.assertEqual(config.data.symbols, ["AAPL", "MSFT", "KO"])
        self.assertEqual(config.data.universe(), ["AAPL", "MSFT"])

    def test_invalid_values_raise_config_error(self) -> None:
        cases = {
            "dates": 'data:\n  start: "2024-01-01"\n  end: "2020-01-01"\n',
            "window": MINIMAL_YAML + "strategy:\n  beta_window: 1\n",
            "groups": MINIMAL_YAML + "strategy:\n  n_groups: 1\n",
            "rate": MINIMAL_YAML + "strategy:\n  risk_free_rate: 1.5\n",
            "leverage": MINIMAL_YAML + "strategy:\n  leverage: 0\n",
            "frequency": MINIMAL_YAML + "strategy:\n  rebalance_frequency: weekly\n",
            "min_obs": MINIMAL_YAML + "evaluation:\n  min_regression_observations: 2\n",
            "root": "- just\n- a list\n",
            "yaml": "data: [unclosed\n",
        }
        for name, yaml_text in cases.items():
            with self.subTest(case=name):
                with self.assertRaises(ConfigLoadError):
                    load_config_from_yaml_text(yaml_text)

    def test_load_config_resolves_relative_artifacts_dir(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir).resolve()
            config_path = root / "study.yaml"
            config_path.write_text(
                MINIMAL_YAML + "output:\n  artifacts_dir: out\n", encoding="utf-8"
            )
            config = load_config(config_path)

            self.assertEqual(config.output.artifacts_dir, root / "out")
            reloaded = load_config_from_yaml_text(dump_config_to_yaml(config))
            self.assertEqual(reloaded, config)

    def test_missing_config_raises(self) -> None:
        with self.assertRaises(ConfigLoadError):
            load_config(Path("/nonexistent/bablab/config.yaml"))


if __name__ == "__main__":
    unittest.main()
