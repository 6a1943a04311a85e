"""Runtime-adjustable risk configuration: source weights, thresholds and scoring factors.

One RiskConfigStore is built at startup and injected wherever scores are computed. Updates are
validated on a copy and swapped in only when valid, so a rejected update leaves the previous
configuration in effect. Weights are always stored normalized to sum to 1.
"""

import json
import logging
import math
import threading
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from app.schemas.risk import (
    RISK_LEVEL_COLORS,
    UNKNOWN_RISK_COLOR,
    RiskConfig,
    RiskFactors,
    RiskLevel,
    RiskThresholds,
    RiskWeights,
)

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

# Weights summing to 1 within this tolerance are stored as given.
WEIGHT_SUM_TOLERANCE = 0.001


class RiskConfigError(Exception):
    """Raised when a runtime configuration update is invalid; current configuration is unchanged."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


def normalize_weights(weights: RiskWeights) -> RiskWeights:
    """Scale weights so they sum to 1. Raises RiskConfigError when the sum is not positive."""
    total = weights.total()
    if not math.isfinite(total) or total <= 0:
        raise RiskConfigError("Risk weights must sum to a positive number.")
    if abs(total - 1) <= WEIGHT_SUM_TOLERANCE:
        return weights
    logger.warning("Risk weights sum to %s, normalizing", total)
    return RiskWeights(
        kb4=weights.kb4 / total,
        ncm=weights.ncm / total,
        edr=weights.edr / total,
        hibp=weights.hibp / total,
    )


def _validate_thresholds(thresholds: RiskThresholds) -> RiskThresholds:
    values = thresholds.model_dump()
    if not all(math.isfinite(v) for v in values.values()):
        raise RiskConfigError("Risk thresholds must be finite numbers.")
    if any(v < 0 for v in values.values()):
        raise RiskConfigError("Risk thresholds must not be negative.")
    t = thresholds
    if not (t.criticalScore >= t.highScore >= t.mediumScore >= t.lowScore):
        raise RiskConfigError(
            "Risk level thresholds must satisfy criticalScore >= highScore >= mediumScore >= lowScore."
        )
    if t.ncmCriticalCvss < t.ncmHighCvss:
        raise RiskConfigError("ncmCriticalCvss must be at least ncmHighCvss.")
    return thresholds


def _validate_factors(factors: RiskFactors) -> RiskFactors:
    if not all(math.isfinite(v) for v in factors.model_dump().values()):
        raise RiskConfigError("Risk factors must be finite numbers.")
    return factors


def _describe_errors(e: ValidationError) -> str:
    """pydantic errors as 'field: msg; field: msg'."""
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'value'}: {err['msg']}" for err in e.errors()
    )


def _merge(model: type[BaseModel], current: BaseModel, partial: dict[str, Any]) -> Any:
    """Validate partial over current; unknown keys and out-of-range values raise RiskConfigError."""
    unknown = set(partial) - set(model.model_fields)
    if unknown:
        raise RiskConfigError(f"Unknown {model.__name__} key(s): {', '.join(sorted(unknown))}")
    merged = {**current.model_dump(), **{k: v for k, v in partial.items() if v is not None}}
    try:
        return model.model_validate(merged)
    except ValidationError as e:
        raise RiskConfigError(f"Invalid {model.__name__}: {_describe_errors(e)}") from e


def _parse_env_json(raw: str | None, model: type[BaseModel], name: str) -> Any:
    """Parse a JSON env override; invalid input logs a warning and yields defaults."""
    if not raw or not raw.strip():
        return model()
    try:
        return model.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Invalid %s format, using defaults: %s", name, e)
        return model()


def load_risk_config(settings: "Settings") -> RiskConfig:
    """Build the initial configuration from RISK_WEIGHTS / RISK_THRESHOLDS / RISK_FACTORS."""
    weights = _parse_env_json(settings.RISK_WEIGHTS, RiskWeights, "RISK_WEIGHTS")
    try:
        weights = normalize_weights(weights)
    except RiskConfigError as e:
        logger.warning("Invalid RISK_WEIGHTS (%s), using defaults", e.message)
        weights = RiskWeights()
    thresholds = _parse_env_json(settings.RISK_THRESHOLDS, RiskThresholds, "RISK_THRESHOLDS")
    try:
        thresholds = _validate_thresholds(thresholds)
    except RiskConfigError as e:
        logger.warning("Invalid RISK_THRESHOLDS (%s), using defaults", e.message)
        thresholds = RiskThresholds()
    factors = _parse_env_json(settings.RISK_FACTORS, RiskFactors, "RISK_FACTORS")
    return RiskConfig(weights=weights, thresholds=thresholds, factors=factors)


class RiskConfigStore:
    """Holds the live RiskConfig behind a lock; reads return copies."""

    def __init__(self, config: RiskConfig | None = None) -> None:
        self._lock = threading.Lock()
        self._config = config.model_copy(deep=True) if config else RiskConfig()

    @classmethod
    def from_settings(cls, settings: "Settings") -> "RiskConfigStore":
        return cls(load_risk_config(settings))

    def get_config(self) -> RiskConfig:
        with self._lock:
            return self._config.model_copy(deep=True)

    def update_weights(self, partial: dict[str, Any]) -> RiskWeights:
        """Merge partial weights, normalize, and store. Raises RiskConfigError when invalid."""
        with self._lock:
            merged = _merge(RiskWeights, self._config.weights, partial)
            weights = normalize_weights(merged)
            self._config = self._config.model_copy(update={"weights": weights})
            logger.info("Risk weights updated", extra={"weights": weights.model_dump()})
            return weights.model_copy()

    def update_thresholds(self, partial: dict[str, Any]) -> RiskThresholds:
        """Merge partial thresholds and store. Raises RiskConfigError when invalid."""
        with self._lock:
            merged = _merge(RiskThresholds, self._config.thresholds, partial)
            thresholds = _validate_thresholds(merged)
            self._config = self._config.model_copy(update={"thresholds": thresholds})
            logger.info("Risk thresholds updated", extra={"thresholds": thresholds.model_dump()})
            return thresholds.model_copy()

    def update_factors(self, partial: dict[str, Any]) -> RiskFactors:
        """Merge partial factors and store. Raises RiskConfigError when invalid."""
        with self._lock:
            merged = _merge(RiskFactors, self._config.factors, partial)
            factors = _validate_factors(merged)
            self._config = self._config.model_copy(update={"factors": factors})
            logger.info("Risk factors updated", extra={"factors": factors.model_dump()})
            return factors.model_copy()

    def risk_level(self, score: float) -> RiskLevel:
        with self._lock:
            thresholds = self._config.thresholds
        return risk_level_for(score, thresholds)


def risk_level_for(score: float, thresholds: RiskThresholds) -> RiskLevel:
    """Monotonic step function from score to level."""
    if score >= thresholds.criticalScore:
        return "critical"
    if score >= thresholds.highScore:
        return "high"
    if score >= thresholds.mediumScore:
        return "medium"
    if score >= thresholds.lowScore:
        return "low"
    return "minimal"


def risk_color(level: str) -> str:
    return RISK_LEVEL_COLORS.get(level, UNKNOWN_RISK_COLOR)
