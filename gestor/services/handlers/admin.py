"""Platform administration intents.

Every operation except the bootstrap ones requires the super admin. Plan
changes made here are recorded in ``admin_actions``.
"""

import asyncio
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any

from gestor.core.exceptions import NotFoundError, PermissionDeniedError
from gestor.core.logging import get_logger
from gestor.core.security import Identity
from gestor.db.store import USERS, utc_timestamp
from gestor.services.cache import KEY_PREFIX_PROFILE
from gestor.services.handlers.base import (
    ADMIN_CONFIG_COLLECTION,
    SUPER_ADMIN_DOC,
    HandlerGroup,
    parse_payload,
    require_identity,
)
from gestor.services.handlers.onboarding import ONBOARDING_COLLECTION
from gestor.services.handlers.schemas import ListRequest, PageRequest, UserPlanUpdate, UserRef
from gestor.services.metrics import METRICS_COLLECTION, Handler

logger = get_logger(__name__)

ADMIN_ACTIONS_COLLECTION = "admin_actions"

ACTIVITY_WINDOW_DAYS = 30
NEW_USER_WINDOW_DAYS = 7


def _days_ago(days: int) -> str:
    return utc_timestamp(datetime.now(timezone.utc) - timedelta(days=days))


def _onboarding_summary(
    session: dict[str, Any] | None, detailed: bool = False
) -> dict[str, Any] | None:
    if session is None:
        return None
    summary = {
        "isCompleted": session.get("isCompleted", False),
        "currentStep": session.get("currentStep"),
        "completedAt": session.get("completedAt"),
    }
    if detailed:
        summary["startedAt"] = session.get("startedAt")
        summary["collectedData"] = session.get("collectedData")
    return summary


class AdminHandlers(HandlerGroup):
    def intents(self) -> dict[str, Handler]:
        return {
            "setupSuperAdmin": self.setup_super_admin,
            "checkAdminStatus": self.check_admin_status,
            "getAdminDashboard": self.get_dashboard,
            "listAllUsers": self.list_all_users,
            "getUserDetails": self.get_user_details,
            "updateUserPlan": self.update_user_plan,
            "getAdminLogs": self.get_admin_logs,
        }

    def is_admin_email(self, email: str) -> bool:
        return bool(email) and email.lower() in self.settings.admin_emails

    async def setup_super_admin(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        """Register the caller as super admin if their e-mail is allow-listed."""
        identity = require_identity(identity)
        if not self.is_admin_email(identity.email):
            raise PermissionDeniedError("Email não autorizado para admin")

        await self.store.set(ADMIN_CONFIG_COLLECTION, SUPER_ADMIN_DOC, {
            "uid": identity.uid,
            "email": identity.email,
            "setupAt": utc_timestamp(),
            "isActive": True,
        })
        logger.info("Super admin configured", email=identity.email)
        return {
            "success": True,
            "message": "Super admin configurado com sucesso!",
            "adminUID": identity.uid,
        }

    async def check_admin_status(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        identity = require_identity(identity)
        return {
            "success": True,
            "isAdmin": await self.is_admin(identity),
            "canBecomeAdmin": self.is_admin_email(identity.email),
            "uid": identity.uid,
            "email": identity.email,
        }

    async def get_dashboard(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        await self.require_admin(identity)

        total_users, new_users, sessions, completed, activity = await asyncio.gather(
            self.store.count(USERS),
            self.store.count(USERS, where=[("createdAt", ">=", _days_ago(NEW_USER_WINDOW_DAYS))]),
            self.store.count(ONBOARDING_COLLECTION),
            self.store.count(ONBOARDING_COLLECTION, where=[("isCompleted", "==", True)]),
            self.store.query(
                METRICS_COLLECTION,
                where=[("timestamp", ">=", _days_ago(ACTIVITY_WINDOW_DAYS))],
            ),
        )

        actions = Counter(event.get("action") for event in activity)
        users = Counter(event.get("userId") for event in activity)
        conversion = completed / sessions * 100 if sessions else 0.0

        return {
            "success": True,
            "dashboard": {
                "overview": {
                    "totalUsers": total_users,
                    "newUsersLast7Days": new_users,
                    "totalOnboardingSessions": sessions,
                    "completedOnboarding": completed,
                    "onboardingConversionRate": round(conversion, 2),
                },
                "activity": {
                    "totalActionsLast30Days": len(activity),
                    "topActions": [
                        {"action": action, "count": count}
                        for action, count in actions.most_common(5)
                    ],
                    "topUsers": [
                        {"userId": user_id, "actions": count}
                        for user_id, count in users.most_common(10)
                    ],
                },
                "systemHealth": {
                    "timestamp": utc_timestamp(),
                    "status": "healthy",
                    "cache": self.cache.get_stats(),
                },
            },
        }

    async def list_all_users(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        await self.require_admin(identity)
        page = parse_payload(PageRequest, payload)

        profiles = await self.store.query(
            USERS,
            order_by="createdAt",
            descending=True,
            limit=page.limit,
            start_after=page.startAfter,
        )
        since = _days_ago(ACTIVITY_WINDOW_DAYS)

        async def enrich(profile: dict[str, Any]) -> dict[str, Any]:
            session, activity = await asyncio.gather(
                self.store.get(ONBOARDING_COLLECTION, profile["id"]),
                self.store.count(
                    METRICS_COLLECTION,
                    where=[("userId", "==", profile["id"]), ("timestamp", ">=", since)],
                ),
            )
            return {
                "uid": profile["id"],
                **profile,
                "onboarding": _onboarding_summary(session),
                "activityLast30Days": activity,
            }

        users = await asyncio.gather(*(enrich(p) for p in profiles))
        return {
            "success": True,
            "users": list(users),
            "hasMore": len(profiles) == page.limit,
        }

    async def get_user_details(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        await self.require_admin(identity)
        ref = parse_payload(UserRef, payload)

        profile = await self.store.get(USERS, ref.userId)
        if profile is None:
            raise NotFoundError("User")

        session = await self.store.get(ONBOARDING_COLLECTION, ref.userId)
        activities = await self.store.query(
            METRICS_COLLECTION,
            where=[
                ("userId", "==", ref.userId),
                ("timestamp", ">=", _days_ago(ACTIVITY_WINDOW_DAYS)),
            ],
            order_by="timestamp",
            descending=True,
            limit=100,
        )
        durations = [float(a.get("duration") or 0) for a in activities]

        return {
            "success": True,
            "user": {
                "uid": ref.userId,
                **profile,
                "onboarding": _onboarding_summary(session, detailed=True),
                "activities": [
                    {
                        "id": a["id"],
                        "action": a.get("action"),
                        "success": a.get("success"),
                        "duration": a.get("duration"),
                        "timestamp": a.get("timestamp"),
                        "metadata": a.get("metadata"),
                    }
                    for a in activities
                ],
                "stats": {
                    "totalActivities": len(activities),
                    "successfulActivities": sum(1 for a in activities if a.get("success")),
                    "averageResponseTime": sum(durations) / len(durations) if durations else 0,
                },
            },
        }

    async def update_user_plan(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        admin = await self.require_admin(identity)
        update = parse_payload(UserPlanUpdate, payload)

        profile = await self.store.get(USERS, update.userId)
        if profile is None:
            raise NotFoundError("User")

        reason = update.reason or "Atualização administrativa"
        await self.store.update(USERS, update.userId, {
            "plan": update.plan.value,
            "planUpdatedBy": admin.uid,
            "planUpdatedAt": utc_timestamp(),
            "planUpdateReason": reason,
        })
        await self.cache.invalidate_entity(KEY_PREFIX_PROFILE, update.userId)

        await self.store.add(ADMIN_ACTIONS_COLLECTION, {
            "adminId": admin.uid,
            "action": "update_user_plan",
            "targetUserId": update.userId,
            "details": {
                "oldPlan": profile.get("plan", "unknown"),
                "newPlan": update.plan.value,
                "reason": reason,
            },
            "timestamp": utc_timestamp(),
        })
        logger.info(
            "User plan updated by admin",
            target_user_id=update.userId,
            plan=update.plan.value,
        )
        return {
            "success": True,
            "message": f"Plano atualizado para {update.plan.value.upper()}",
        }

    async def get_admin_logs(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        await self.require_admin(identity)
        request = parse_payload(ListRequest, payload)

        logs = await self.store.query(
            ADMIN_ACTIONS_COLLECTION,
            order_by="timestamp",
            descending=True,
            limit=request.limit,
        )
        return {"success": True, "logs": logs}
