"""End-to-end tests for the Betting-Against-Beta pipeline."""

from __future__ import annotations

import unittest

import pandas as pd

from bablab.core.research.pipeline import PipelineSettings, run_bab_pipeline
from bablab.core.utils.errors import PipelineError
from bablab.tests.helpers import monthly_series, synthetic_market

SCALES = (0.2, 0.6, 1.0, 1.4, 1.8)
SETTINGS = PipelineSettings(beta_window=36, n_groups=5, risk_free_rate=0.02)


class TestBabPipeline(unittest.TestCase):
    """Validate the synthetic five-entity scenario and pipeline bookkeeping."""

    def setUp(self) -> None:
        self.returns_by_entity, self.market = synthetic_market(SCALES, periods=48, seed=7)

    def test_low_beta_entity_is_long_and_high_beta_entity_is_short(self) -> None:
        result = run_bab_pipeline(self.returns_by_entity, self.market, SETTINGS)

        self.assertEqual(len(result.assignments), 13)
        for assignment in result.assignments:
            self.assertEqual(assignment.lowest, frozenset({"E1"}))
            self.assertEqual(assignment.highest, frozenset({"E5"}))
        for entity, scale in zip(sorted(result.betas), SCALES):
            self.assertAlmostEqual(float(result.betas[entity].iloc[-1]), scale, delta=0.05)

    def test_strategy_equals_low_minus_high_excess_returns(self) -> None:
        result = run_bab_pipeline(self.returns_by_entity, self.market, SETTINGS)
        dates = [assignment.date for assignment in result.assignments][1:]
        expected = (
            result.excess_returns["E1"].reindex(dates) - result.excess_returns["E5"].reindex(dates)
        )

        self.assertEqual(result.strategy.defined_periods, 12)
        self.assertEqual(list(result.strategy.returns.index), dates)
        for actual, wanted in zip(result.strategy.returns.tolist(), expected.tolist()):
            self.assertAlmostEqual(actual, wanted, places=12)

    def test_report_and_diagnostics(self) -> None:
        result = run_bab_pipeline(self.returns_by_entity, self.market, SETTINGS)

        assert result.report is not None
        self.assertEqual(result.report.n_observations, 12)
        self.assertIsNotNone(result.report.regression)
        self.assertAlmostEqual(
            float(result.strategy_cumulative.iloc[-1]), 1.0 + result.report.total_return, places=12
        )
        self.assertEqual(
            result.diagnostics.as_dict(),
            {
                "entities_input": 5,
                "entities_with_beta": 5,
                "entities_skipped": 0,
                "rebalance_dates": 13,
                "dates_ranked": 13,
                "dates_skipped": 0,
                "strategy_periods": 12,
                "undefined_periods": 0,
                "missing_member_observations": 0,
            },
        )

    def test_pipeline_is_idempotent(self) -> None:
        first = run_bab_pipeline(self.returns_by_entity, self.market, SETTINGS)
        second = run_bab_pipeline(self.returns_by_entity, self.market, SETTINGS)

        pd.testing.assert_series_equal(first.strategy.returns, second.strategy.returns)
        self.assertEqual(first.assignments, second.assignments)
        self.assertEqual(first.report, second.report)

    def test_short_history_entity_is_skipped(self) -> None:
        returns_by_entity = dict(self.returns_by_entity)
        returns_by_entity["SHORT"] = monthly_series([0.01] * 12)
        result = run_bab_pipeline(returns_by_entity, self.market, SETTINGS)

        self.assertNotIn("SHORT", result.betas)
        self.assertEqual(result.diagnostics.entities_skipped, 1)
        self.assertEqual(result.diagnostics.strategy_periods, 12)

    def test_too_few_entities_yields_no_report(self) -> None:
        subset = {key: self.returns_by_entity[key] for key in ("E1", "E2")}
        result = run_bab_pipeline(subset, self.market, SETTINGS)

        self.assertEqual(result.assignments, [])
        self.assertTrue(result.strategy.returns.empty)
        self.assertIsNone(result.report)
        self.assertEqual(result.diagnostics.dates_skipped, 13)

    def test_empty_input_raises(self) -> None:
        with self.assertRaises(PipelineError):
            run_bab_pipeline({}, self.market, SETTINGS)


if __name__ == "__main__":
    unittest.main()
