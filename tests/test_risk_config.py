"""Unit tests for app.services.risk_config: normalization, validation and the config store."""

import unittest
from unittest.mock import MagicMock

from app.schemas.risk import RiskThresholds, RiskWeights
from app.services.risk_config import (
    RiskConfigError,
    RiskConfigStore,
    load_risk_config,
    normalize_weights,
    risk_color,
    risk_level_for,
)


def _env(weights: str | None = None, thresholds: str | None = None, factors: str | None = None) -> MagicMock:
    settings = MagicMock()
    settings.RISK_WEIGHTS = weights
    settings.RISK_THRESHOLDS = thresholds
    settings.RISK_FACTORS = factors
    return settings


class TestNormalizeWeights(unittest.TestCase):
    def test_weights_summing_to_one_are_unchanged(self) -> None:
        weights = RiskWeights()
        self.assertEqual(normalize_weights(weights), weights)

    def test_material_deviation_is_scaled(self) -> None:
        weights = normalize_weights(RiskWeights(kb4=0.1, ncm=0.1, edr=0.1, hibp=0.1))
        for value in (weights.kb4, weights.ncm, weights.edr, weights.hibp):
            self.assertAlmostEqual(value, 0.25)
        self.assertAlmostEqual(weights.total(), 1.0)

    def test_zero_sum_is_rejected(self) -> None:
        with self.assertRaises(RiskConfigError):
            normalize_weights(RiskWeights(kb4=0, ncm=0, edr=0, hibp=0))


class TestRiskConfigStore(unittest.TestCase):
    def test_update_weights_normalizes_and_persists(self) -> None:
        store = RiskConfigStore()
        stored = store.update_weights({"kb4": 0.1, "ncm": 0.1, "edr": 0.1, "hibp": 0.1})
        self.assertAlmostEqual(stored.kb4, 0.25)
        self.assertAlmostEqual(store.get_config().weights.total(), 1.0)

    def test_weights_above_one_are_normalized(self) -> None:
        store = RiskConfigStore()
        stored = store.update_weights({"kb4": 2, "ncm": 2, "edr": 2, "hibp": 2})
        for value in (stored.kb4, stored.ncm, stored.edr, stored.hibp):
            self.assertAlmostEqual(value, 0.25)

        stored = store.update_weights({"hibp": 1.5})
        self.assertAlmostEqual(stored.hibp, 1.5 / 2.25)
        self.assertAlmostEqual(stored.kb4, 0.25 / 2.25)
        self.assertAlmostEqual(store.get_config().weights.total(), 1.0)

    def test_rejection_message_names_the_field(self) -> None:
        with self.assertRaises(RiskConfigError) as ctx:
            RiskConfigStore().update_weights({"kb4": -1})
        self.assertEqual(
            ctx.exception.message,
            "Invalid RiskWeights: kb4: Input should be greater than or equal to 0",
        )
        self.assertNotIn("http", ctx.exception.message)

    def test_partial_update_merges_with_current(self) -> None:
        store = RiskConfigStore()
        store.update_weights({"hibp": 0.15})
        self.assertEqual(store.get_config().weights, RiskWeights())

    def test_invalid_update_keeps_previous_weights(self) -> None:
        store = RiskConfigStore()
        store.update_weights({"kb4": 0.25, "ncm": 0.25, "edr": 0.25, "hibp": 0.25})
        before = store.get_config().weights

        with self.assertRaises(RiskConfigError):
            store.update_weights({"kb4": 0, "ncm": 0, "edr": 0, "hibp": 0})
        with self.assertRaises(RiskConfigError):
            store.update_weights({"kb4": -1})
        with self.assertRaises(RiskConfigError):
            store.update_weights({"identity": 0.5})

        self.assertEqual(store.get_config().weights, before)

    def test_thresholds_must_stay_ordered(self) -> None:
        store = RiskConfigStore()
        with self.assertRaises(RiskConfigError):
            store.update_thresholds({"highScore": 90})
        self.assertEqual(store.get_config().thresholds, RiskThresholds())

        updated = store.update_thresholds({"criticalScore": 90, "highScore": 70})
        self.assertEqual((updated.criticalScore, updated.highScore), (90, 70))
        self.assertEqual(store.risk_level(75), "high")

    def test_get_config_returns_a_copy(self) -> None:
        store = RiskConfigStore()
        config = store.get_config()
        config.weights.kb4 = 0.9
        self.assertEqual(store.get_config().weights.kb4, 0.20)

    def test_update_factors(self) -> None:
        store = RiskConfigStore()
        self.assertEqual(store.update_factors({"hibpPendingMultiplier": 5}).hibpPendingMultiplier, 5)
        with self.assertRaises(RiskConfigError):
            store.update_factors({"hibpPendingMultiplier": -1})


class TestLoadRiskConfig(unittest.TestCase):
    def test_defaults_without_env(self) -> None:
        config = load_risk_config(_env())
        self.assertEqual(config.weights, RiskWeights())

    def test_env_weights_are_normalized(self) -> None:
        config = load_risk_config(_env(weights='{"kb4": 1, "ncm": 1, "edr": 1, "hibp": 1}'))
        self.assertAlmostEqual(config.weights.ncm, 0.25)

    def test_invalid_env_json_falls_back_to_defaults(self) -> None:
        with self.assertLogs("app.services.risk_config", level="WARNING"):
            config = load_risk_config(_env(weights="{not json", thresholds='{"criticalScore": 10}'))
        self.assertEqual(config.weights, RiskWeights())
        self.assertEqual(config.thresholds, RiskThresholds())


class TestRiskLevel(unittest.TestCase):
    def test_step_function_boundaries(self) -> None:
        t = RiskThresholds()
        self.assertEqual(risk_level_for(80, t), "critical")
        self.assertEqual(risk_level_for(79, t), "high")
        self.assertEqual(risk_level_for(60, t), "high")
        self.assertEqual(risk_level_for(40, t), "medium")
        self.assertEqual(risk_level_for(20, t), "low")
        self.assertEqual(risk_level_for(19, t), "minimal")
        self.assertEqual(risk_level_for(0, t), "minimal")

    def test_colors(self) -> None:
        self.assertEqual(risk_color("critical"), "#dc2626")
        self.assertEqual(risk_color("bogus"), "#6b7280")


if __name__ == "__main__":
    unittest.main()
