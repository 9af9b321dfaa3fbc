"""
Subscription quotas and capability flags.

The quota table is configuration data; QuotaPolicy only reads it together
with the usage counts supplied by the ledger.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Tuple

from .features import FeatureType


UNLIMITED = -1
DEFAULT_TIER = "free"
TIERS: Tuple[str, ...] = ("free", "pro", "enterprise")
CAPABILITIES: Tuple[str, ...] = ("batchProcess", "advancedAnalysis", "prioritySupport")


@dataclass(frozen=True)
class TierPolicy:
    """Daily caps per feature and capability flags for one tier."""
    daily_limits: Dict[FeatureType, int]
    features: Dict[str, bool] = field(default_factory=dict)

    def __post_init__(self):
        missing = [f.value for f in FeatureType if f not in self.daily_limits]
        if missing:
            raise ValueError(f"daily_limits missing features: {missing}")
        for feature, cap in self.daily_limits.items():
            if isinstance(cap, bool) or not isinstance(cap, int) or cap < UNLIMITED:
                raise ValueError(f"daily limit for {feature.value} must be an integer >= -1")
        unknown = set(self.features) - set(CAPABILITIES)
        if unknown:
            raise ValueError(f"Unknown capability flags: {sorted(unknown)}")

    def limit_for(self, feature: FeatureType) -> int:
        return self.daily_limits[feature]

    def has_capability(self, capability: str) -> bool:
        return bool(self.features.get(capability, False))

    def to_dict(self) -> Dict[str, Dict]:
        return {
            "dailyLimits": {f.value: self.daily_limits[f] for f in FeatureType},
            "features": {c: self.has_capability(c) for c in CAPABILITIES},
        }


@dataclass(frozen=True)
class QuotaTable:
    """Tier name to policy mapping."""
    tiers: Dict[str, TierPolicy]

    def __post_init__(self):
        if DEFAULT_TIER not in self.tiers:
            raise ValueError(f"Quota table must define the '{DEFAULT_TIER}' tier")

    def normalize_tier(self, tier: str) -> str:
        value = str(tier or "").strip().lower()
        return value if value in self.tiers else DEFAULT_TIER

    def policy_for(self, tier: str) -> TierPolicy:
        return self.tiers[self.normalize_tier(tier)]


def _limits(title, optimize, style, analysis, seo) -> Dict[FeatureType, int]:
    return {
        FeatureType.TITLE_GENERATION: title,
        FeatureType.CONTENT_OPTIMIZATION: optimize,
        FeatureType.STYLE_RECOMMENDATION: style,
        FeatureType.ARTICLE_ANALYSIS: analysis,
        FeatureType.SEO_OPTIMIZATION: seo,
    }


DEFAULT_QUOTA_TABLE = QuotaTable({
    "free": TierPolicy(
        daily_limits=_limits(10, 5, 3, 2, 2),
        features={"batchProcess": False, "advancedAnalysis": False, "prioritySupport": False},
    ),
    "pro": TierPolicy(
        daily_limits=_limits(100, 50, 30, 20, 20),
        features={"batchProcess": True, "advancedAnalysis": True, "prioritySupport": False},
    ),
    "enterprise": TierPolicy(
        daily_limits=_limits(UNLIMITED, UNLIMITED, UNLIMITED, UNLIMITED, UNLIMITED),
        features={"batchProcess": True, "advancedAnalysis": True, "prioritySupport": True},
    ),
})


def within_limit(used_today: int, cap: int) -> bool:
    """True when another call is allowed under cap (-1 is unlimited)."""
    if cap == UNLIMITED:
        return True
    return used_today < cap


class QuotaPolicy:
    """Decides whether a user may spend another call on a feature today.

    Args:
        table: Quota table to enforce
        count_today: Callable (user_id, feature) -> calls recorded today
    """

    def __init__(self, table: QuotaTable, count_today: Callable[[str, FeatureType], int]):
        self.table = table
        self._count_today = count_today

    def check_limit(self, user_id: str, feature: FeatureType, tier: str) -> bool:
        cap = self.table.policy_for(tier).limit_for(feature)
        if cap == UNLIMITED:
            return True
        return within_limit(self._count_today(user_id, feature), cap)

    def has_capability(self, tier: str, capability: str) -> bool:
        return self.table.policy_for(tier).has_capability(capability)

    def describe(self, tier: str) -> Dict[str, Dict]:
        return self.table.policy_for(tier).to_dict()
