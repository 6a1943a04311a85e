"""Unit tests for app.services.risk_scoring: sub-score formulas, rounding and boundedness."""

import math
import unittest

from app.schemas.risk import RiskConfig, RiskFactors, RiskWeights
from app.services.risk_scoring import (
    AlertAggregates,
    BreachAggregates,
    DeviceAggregates,
    IdentityAggregates,
    percentage,
    round_half_up,
    score_alerts,
    score_breaches,
    score_devices,
    score_identity_risk,
    score_sources,
)


class TestRounding(unittest.TestCase):
    def test_round_half_up(self) -> None:
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(0.125, 2), 0.13)
        self.assertEqual(round_half_up(float("nan")), 0.0)

    def test_percentage(self) -> None:
        self.assertEqual(percentage(1, 3), 33)
        self.assertEqual(percentage(1, 8), 13)
        self.assertEqual(percentage(5, 0), 0)


class TestSubScores(unittest.TestCase):
    def setUp(self) -> None:
        self.factors = RiskFactors()

    def test_identity_score(self) -> None:
        stats = score_identity_risk(
            IdentityAggregates(total=10, high_risk=2, avg_risk_score=12.5, avg_phish_prone_rate=8), self.factors
        )
        self.assertEqual(stats.risk_percentage, 20)
        self.assertEqual(stats.avg_risk_score, 12.5)
        self.assertEqual(stats.score, 52.5)

    def test_device_score(self) -> None:
        stats = score_devices(DeviceAggregates(total=4, p0=1, p1=1, p3=2, avg_max_cvss=5.04), self.factors)
        self.assertEqual(stats.critical_percentage, 25)
        self.assertEqual(stats.avg_max_cvss, 5.0)
        self.assertEqual(stats.score, 100.0)

    def test_alert_score(self) -> None:
        stats = score_alerts(
            AlertAggregates(
                total=10,
                by_status={"new": 2, "investigating": 1, "resolved": 7},
                by_severity={"Critical": 1, "High": 1, "Low": 8},
            ),
            self.factors,
        )
        self.assertEqual(stats.pending_count, 3)
        self.assertEqual(stats.pending_percentage, 30)
        self.assertEqual(stats.high_severity_percentage, 20)
        self.assertEqual(stats.score, 50.0)

    def test_breach_score(self) -> None:
        stats = score_breaches(BreachAggregates(total=5, by_status={"new": 3, "resolved": 2}), self.factors)
        self.assertEqual(stats.pending_count, 3)
        self.assertEqual(stats.score, 30.0)

    def test_empty_sources_score_zero(self) -> None:
        stats, overall = score_sources(
            IdentityAggregates(), DeviceAggregates(), AlertAggregates(), BreachAggregates(), RiskConfig()
        )
        self.assertEqual(overall, 0)
        self.assertEqual(stats.kb4.score, 0.0)
        self.assertEqual(stats.ncm.score, 0.0)


class TestBoundedness(unittest.TestCase):
    def test_extreme_inputs_are_clamped(self) -> None:
        config = RiskConfig(factors=RiskFactors(hibpPendingMultiplier=1e9, ncmCvssMultiplier=1e9))
        cases = [
            (IdentityAggregates(), DeviceAggregates(), AlertAggregates(), BreachAggregates()),
            (
                IdentityAggregates(total=1, high_risk=1, avg_risk_score=1e12, avg_phish_prone_rate=100),
                DeviceAggregates(total=1, p0=1, avg_max_cvss=10),
                AlertAggregates(total=1, by_status={"new": 1}, by_severity={"Critical": 1}),
                BreachAggregates(total=10**6, by_status={"new": 10**6}),
            ),
            (
                IdentityAggregates(total=3, high_risk=0, avg_risk_score=math.nan),
                DeviceAggregates(total=0, avg_max_cvss=math.inf),
                AlertAggregates(total=0, by_status={"new": 5}),
                BreachAggregates(),
            ),
        ]
        for case in cases:
            stats, overall = score_sources(*case, config)
            for sub in (stats.kb4, stats.ncm, stats.edr, stats.hibp):
                self.assertGreaterEqual(sub.score, 0)
                self.assertLessEqual(sub.score, 100)
            self.assertGreaterEqual(overall, 0)
            self.assertLessEqual(overall, 100)

    def test_overall_is_weighted_sum(self) -> None:
        config = RiskConfig(weights=RiskWeights(kb4=0, ncm=0, edr=0, hibp=1))
        _, overall = score_sources(
            IdentityAggregates(),
            DeviceAggregates(),
            AlertAggregates(),
            BreachAggregates(total=2, by_status={"new": 2}),
            config,
        )
        self.assertEqual(overall, 20)


if __name__ == "__main__":
    unittest.main()
