"""Feature flag helpers for runtime configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Literal, TypedDict, cast


FeatureFlagKey = Literal[
    "feature_khalti_enabled",
    "feature_esewa_enabled",
    "feature_promotions_enabled",
]


class FeatureFlagValues(TypedDict):
    feature_khalti_enabled: bool
    feature_esewa_enabled: bool
    feature_promotions_enabled: bool


@dataclass(frozen=True)
class FeatureFlagDefinition:
    env_var: str
    default: bool


_FEATURE_FLAG_DEFINITIONS: Dict[FeatureFlagKey, FeatureFlagDefinition] = {
    "feature_khalti_enabled": FeatureFlagDefinition("FEATURE_KHALTI_ENABLED", True),
    "feature_esewa_enabled": FeatureFlagDefinition("FEATURE_ESEWA_ENABLED", True),
    "feature_promotions_enabled": FeatureFlagDefinition("FEATURE_PROMOTIONS_ENABLED", True),
}


def _normalize_bool(value: str | None, default: bool = True) -> bool:
    """Return normalized boolean from environment-style value."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"", "0", "false", "no", "off"}:
        return False
    if normalized in {"1", "true", "yes", "on"}:
        return True
    return default


@lru_cache(maxsize=None)
def get_feature_flags() -> FeatureFlagValues:
    """Return the cached feature flag state sourced from the environment."""
    values: Dict[FeatureFlagKey, bool] = {}
    for key, definition in _FEATURE_FLAG_DEFINITIONS.items():
        values[key] = _normalize_bool(os.getenv(definition.env_var), default=definition.default)
    return cast(FeatureFlagValues, values)


def is_feature_enabled(flag: FeatureFlagKey) -> bool:
    """Return whether the supplied feature flag evaluates to true."""
    return get_feature_flags()[flag]


def khalti_enabled() -> bool:
    """Toggle the Khalti checkout option."""
    return is_feature_enabled("feature_khalti_enabled")


def esewa_enabled() -> bool:
    """Toggle the eSewa checkout option."""
    return is_feature_enabled("feature_esewa_enabled")


def promotions_enabled() -> bool:
    """Toggle paid ad promotions."""
    return is_feature_enabled("feature_promotions_enabled")


def refresh_feature_flag_cache() -> None:
    """Invalidate cached feature flag values (useful for tests)."""
    get_feature_flags.cache_clear()
