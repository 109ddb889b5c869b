"""Per-tier quotas on the number of stored entities.

The check counts the live collection and is not atomic with the create
that follows it; concurrent creates can overshoot the ceiling slightly.
"""

from enum import Enum

from gestor.core.exceptions import ResourceExhaustedError
from gestor.core.logging import get_logger
from gestor.db.store import USERS, DocumentStore, user_collection

logger = get_logger(__name__)


class PlanTier(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


# None means unbounded
PLAN_LIMITS: dict[PlanTier, dict[str, int | None]] = {
    PlanTier.FREE: {"expenses": 100, "orders": 50, "recipes": 10},
    PlanTier.PRO: {"expenses": 1000, "orders": 500, "recipes": 100},
    PlanTier.ENTERPRISE: {"expenses": None, "orders": None, "recipes": None},
}

# Limited action -> collection kind it creates into
ACTION_KINDS = {
    "create_expense": "expenses",
    "create_order": "orders",
    "create_recipe": "recipes",
}

EXHAUSTED_MESSAGES = {
    "create_expense": "Limite de despesas atingido para seu plano atual.",
    "create_order": "Limite de pedidos atingido para seu plano atual.",
    "create_recipe": "Limite de receitas atingido para seu plano atual.",
}


def parse_plan(value: object) -> PlanTier:
    """Plan of a stored profile; unknown or missing values fall back to free."""
    try:
        return PlanTier(value)
    except ValueError:
        return PlanTier.FREE


class PlanLimiter:
    """Checks a user's collection sizes against their plan ceilings."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def check_limit(self, user_id: str, action: str) -> bool:
        """Whether ``user_id`` may perform ``action``.

        Actions without a quota are always allowed. A user without a profile
        is treated as being on the free tier.
        """
        kind = ACTION_KINDS.get(action)
        if kind is None:
            return True

        profile = await self._store.get(USERS, user_id)
        plan = parse_plan((profile or {}).get("plan"))
        ceiling = PLAN_LIMITS[plan][kind]
        if ceiling is None:
            return True

        count = await self._store.count(user_collection(user_id, kind))
        allowed = count < ceiling
        if not allowed:
            logger.info(
                "Plan limit reached",
                user_id=user_id,
                action=action,
                plan=plan.value,
                count=count,
                ceiling=ceiling,
            )
        return allowed

    async def enforce(self, user_id: str, action: str) -> None:
        """Raise ResourceExhaustedError when the limit is reached."""
        if not await self.check_limit(user_id, action):
            raise ResourceExhaustedError(
                EXHAUSTED_MESSAGES.get(action, "Plan limit reached"),
                action=action,
            )
