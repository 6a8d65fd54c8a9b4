from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from config.settings import PLAN_BRONZE, PLAN_GOLD, PLAN_SILVER


@dataclass(frozen=True)
class PlanDefinition:
    """A purchasable tier. amount is in the smallest currency unit."""

    key: str
    amount: int
    duration_days: int
    # seconds; 0 means unlimited
    allowed_watch_duration: int
    description: str


class PlanCatalog:
    """Tier table handed to EntitlementService; unknown tiers resolve to the default."""

    def __init__(self, plans: Iterable[PlanDefinition], default_key: str = PLAN_BRONZE):
        self.plans: Mapping[str, PlanDefinition] = MappingProxyType({p.key: p for p in plans})
        if default_key not in self.plans:
            raise ValueError(f"default plan {default_key!r} is not in the catalog")
        self.default_key = default_key

    def resolve(self, plan_type: Optional[str]) -> PlanDefinition:
        key = str(plan_type or "").strip().lower()
        return self.plans.get(key, self.plans[self.default_key])

    def __contains__(self, plan_type: str) -> bool:
        return plan_type in self.plans


DEFAULT_PLAN_CATALOG = PlanCatalog(
    [
        PlanDefinition(PLAN_BRONZE, 1000, 30, 420, "Bronze Plan - 7 min"),
        PlanDefinition(PLAN_SILVER, 5000, 90, 600, "Silver Plan - 10 min"),
        PlanDefinition(PLAN_GOLD, 10000, 365, 0, "Gold Plan - Unlimited"),
    ]
)
