"""User profile intents."""

import asyncio
from typing import Any

from gestor.core.exceptions import NotFoundError
from gestor.core.logging import get_logger
from gestor.core.security import Identity
from gestor.db.store import USERS, user_collection, utc_timestamp
from gestor.services.cache import (
    KEY_PREFIX_EXPENSES,
    KEY_PREFIX_INVENTORY,
    KEY_PREFIX_ORDERS,
    KEY_PREFIX_PROFILE,
    KEY_PREFIX_RECIPES,
    TTL_PROFILE,
)
from gestor.services.handlers.base import HandlerGroup, parse_payload, require_identity
from gestor.services.handlers.schemas import PlanChange, ProfileSetup
from gestor.services.metrics import Handler
from gestor.services.plan_limits import PLAN_LIMITS, PlanTier, parse_plan

logger = get_logger(__name__)

DEFAULT_PREFERENCES = {
    "language": "pt-BR",
    "timezone": "America/Sao_Paulo",
    "notifications": True,
}

COUNTED_KINDS = (KEY_PREFIX_EXPENSES, KEY_PREFIX_ORDERS, KEY_PREFIX_RECIPES, KEY_PREFIX_INVENTORY)


def default_profile(
    uid: str,
    email: str = "",
    display_name: str = "",
    photo_url: str = "",
) -> dict[str, Any]:
    """A new free-tier profile."""
    now = utc_timestamp()
    return {
        "uid": uid,
        "email": email,
        "displayName": display_name,
        "photoURL": photo_url,
        "plan": PlanTier.FREE.value,
        "preferences": dict(DEFAULT_PREFERENCES),
        "createdAt": now,
        "lastLogin": now,
    }


class ProfileHandlers(HandlerGroup):
    def intents(self) -> dict[str, Handler]:
        return {
            "setupUser": self.setup_user,
            "getUserProfile": self.get_user_profile,
            "setupUserProfile": self.setup_user_profile,
            "updateMyPlan": self.update_my_plan,
            "getUserStats": self.get_user_stats,
        }

    async def load_profile(self, uid: str) -> tuple[dict[str, Any] | None, bool]:
        """Read-through profile lookup, ``(profile, cached)``."""
        return await self.cache.read_through(
            self.cache.entity_key(KEY_PREFIX_PROFILE, uid),
            lambda: self.store.get(USERS, uid),
            TTL_PROFILE,
        )

    async def invalidate_profile(self, uid: str) -> None:
        await self.cache.invalidate_entity(KEY_PREFIX_PROFILE, uid)

    async def setup_user(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        """Return the caller's profile, creating a default one on first use."""
        identity = require_identity(identity)
        setup = parse_payload(ProfileSetup, payload)

        profile, cached = await self.load_profile(identity.uid)
        created = False
        if profile is None:
            profile = default_profile(
                identity.uid,
                email=setup.email or identity.email,
                display_name=setup.displayName or "",
                photo_url=setup.photoURL or "",
            )
            await self.store.set(USERS, identity.uid, profile)
            await self.cache.set_user_profile(identity.uid, profile)
            created = True
            logger.info("User profile created")

        return {
            "success": True,
            "message": "Usuário configurado com sucesso!",
            "userProfile": profile,
            "created": created,
            "cached": cached,
        }

    async def get_user_profile(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid

        profile, cached = await self.load_profile(uid)
        if profile is None:
            raise NotFoundError("User profile")

        return {
            "success": True,
            "userProfile": profile,
            "source": "cache" if cached else "store",
            "cached": cached,
        }

    async def setup_user_profile(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        """Create the profile or merge the given fields into it."""
        identity = require_identity(identity)
        setup = parse_payload(ProfileSetup, payload)
        fields = setup.model_dump(exclude_none=True)

        existing = await self.store.get(USERS, identity.uid)
        if existing is None:
            profile = default_profile(identity.uid, email=identity.email)
            if "preferences" in fields:
                profile["preferences"].update(fields.pop("preferences"))
            profile.update(fields)
            await self.store.set(USERS, identity.uid, profile)
            message = "Perfil criado com sucesso!"
        else:
            if "preferences" in fields:
                fields["preferences"] = {
                    **(existing.get("preferences") or {}),
                    **fields["preferences"],
                }
            fields["updatedAt"] = utc_timestamp()
            await self.store.set(USERS, identity.uid, fields, merge=True)
            message = "Perfil atualizado com sucesso!"

        await self.invalidate_profile(identity.uid)
        profile = await self.store.get(USERS, identity.uid)
        return {"success": True, "message": message, "userProfile": profile}

    async def update_my_plan(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        change = parse_payload(PlanChange, payload)

        changes = {"plan": change.plan.value, "planUpdatedAt": utc_timestamp()}
        changes.update(
            change.model_dump(include={"subscriptionId", "customerId"}, exclude_none=True)
        )

        updated = await self.store.update(USERS, uid, changes)
        if not updated:
            raise NotFoundError("User profile")

        await self.invalidate_profile(uid)
        logger.info("Plan changed", plan=change.plan.value)
        return {
            "success": True,
            "message": f"Plano atualizado para {change.plan.value.upper()}",
            "plan": change.plan.value,
        }

    async def get_user_stats(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid

        profile, _ = await self.load_profile(uid)
        if profile is None:
            raise NotFoundError("User profile")

        counts = await asyncio.gather(
            *(self.store.count(user_collection(uid, kind)) for kind in COUNTED_KINDS)
        )
        plan = parse_plan(profile.get("plan"))
        return {
            "success": True,
            "stats": {
                "plan": plan.value,
                "limits": PLAN_LIMITS[plan],
                "memberSince": profile.get("createdAt"),
                "lastLogin": profile.get("lastLogin"),
                "counts": dict(zip(COUNTED_KINDS, counts)),
            },
        }
