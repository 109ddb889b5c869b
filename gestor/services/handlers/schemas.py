"""Pydantic models for intent payloads.

Field names follow the wire format used by the web client (Portuguese for
the bookkeeping intents, camelCase elsewhere).
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from gestor.services.plan_limits import PlanTier


class Payload(BaseModel):
    """Base for intent payloads; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")


# ============================================================
# Shared
# ============================================================

class ListRequest(Payload):
    limit: int = Field(default=50, ge=1, le=1000)


class PageRequest(Payload):
    limit: int = Field(default=50, ge=1, le=1000)
    startAfter: str | None = None


# ============================================================
# Profile
# ============================================================

class ProfileSetup(Payload):
    email: str | None = None
    displayName: str | None = None
    photoURL: str | None = None
    preferences: dict[str, Any] | None = None


class PlanChange(Payload):
    plan: PlanTier
    subscriptionId: str | None = Field(default=None, min_length=1)
    customerId: str | None = Field(default=None, min_length=1)


# ============================================================
# Expenses
# ============================================================

class ExpenseCreate(Payload):
    data: str = Field(..., min_length=1, description="Expense date")
    tipo: str = Field(..., min_length=1, description="Expense type")
    valor: float = Field(..., ge=0, allow_inf_nan=False, description="Amount")
    fornecedor: str = Field(..., min_length=1, description="Supplier")
    description: str | None = None
    category: str | None = None


class ExpenseUpdate(Payload):
    expenseId: str = Field(..., min_length=1)
    data: str | None = None
    tipo: str | None = None
    valor: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    fornecedor: str | None = None
    description: str | None = None
    category: str | None = None


class ExpenseRef(Payload):
    expenseId: str = Field(..., min_length=1)


# ============================================================
# Orders
# ============================================================

class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderCreate(Payload):
    cliente: str = Field(..., min_length=1, description="Customer")
    produtos: list[Any] | str = Field(..., description="Products")
    dataEntrega: str = Field(..., min_length=1, description="Delivery date")
    valor: float = Field(..., ge=0, allow_inf_nan=False, description="Amount")
    status: OrderStatus = OrderStatus.PENDING


class OrderStatusUpdate(Payload):
    orderId: str = Field(..., min_length=1)
    status: OrderStatus


class OrderRef(Payload):
    orderId: str = Field(..., min_length=1)


# ============================================================
# Recipes
# ============================================================

class RecipeCreate(Payload):
    recipeName: str = Field(..., min_length=1)
    ingredients: list[Any] = Field(default_factory=list)


class RecipeRef(Payload):
    recipeId: str = Field(..., min_length=1)


# ============================================================
# Inventory
# ============================================================

class InventoryItemCreate(Payload):
    name: str = Field(..., min_length=1)
    quantity: float = Field(..., ge=0, allow_inf_nan=False)
    unit: str = Field(..., min_length=1)
    lowStockThreshold: float = Field(default=0, ge=0)


class InventoryItemUpdate(Payload):
    itemId: str = Field(..., min_length=1)
    name: str | None = None
    quantity: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    unit: str | None = None
    lowStockThreshold: float | None = Field(default=None, ge=0)


class InventoryItemRef(Payload):
    itemId: str = Field(..., min_length=1)


# ============================================================
# Analysis, cache & metrics
# ============================================================

class AnalysisRequest(Payload):
    query: str = Field(..., min_length=1, max_length=2000)


class UserMetricsRequest(Payload):
    days: int = Field(default=7, ge=1, le=365)


class SystemMetricsRequest(Payload):
    hours: int = Field(default=24, ge=1, le=24 * 30)


# ============================================================
# Onboarding
# ============================================================

class OnboardingAnswer(Payload):
    response: str = Field(..., min_length=1)


# ============================================================
# Administration
# ============================================================

class UserRef(Payload):
    userId: str = Field(..., min_length=1)


class UserPlanUpdate(Payload):
    userId: str = Field(..., min_length=1)
    plan: PlanTier
    reason: str | None = None


# ============================================================
# Backups
# ============================================================

class BackupCreate(Payload):
    collections: list[str] | None = None
    description: str | None = None


class BackupListRequest(Payload):
    limit: int = Field(default=20, ge=1, le=200)
    status: str | None = None
    type: str | None = None


class BackupRef(Payload):
    backupId: str = Field(..., min_length=1)


class RestoreRequest(Payload):
    backupId: str = Field(..., min_length=1)
    dryRun: bool = True
