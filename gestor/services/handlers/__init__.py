"""Intent handlers grouped by domain."""

from typing import TYPE_CHECKING

from gestor.services.dispatcher import IntentDispatcher
from gestor.services.handlers.admin import AdminHandlers
from gestor.services.handlers.analysis import AnalysisHandlers
from gestor.services.handlers.backup import BackupHandlers
from gestor.services.handlers.base import HandlerGroup
from gestor.services.handlers.expenses import ExpenseHandlers
from gestor.services.handlers.inventory import InventoryHandlers
from gestor.services.handlers.onboarding import OnboardingHandlers
from gestor.services.handlers.orders import OrderHandlers
from gestor.services.handlers.profile import ProfileHandlers
from gestor.services.handlers.recipes import RecipeHandlers
from gestor.services.handlers.system import SystemHandlers

if TYPE_CHECKING:
    from gestor.services.container import AppServices

HANDLER_GROUPS: tuple[type[HandlerGroup], ...] = (
    SystemHandlers,
    ProfileHandlers,
    ExpenseHandlers,
    OrderHandlers,
    RecipeHandlers,
    InventoryHandlers,
    AnalysisHandlers,
    OnboardingHandlers,
    AdminHandlers,
    BackupHandlers,
)


def build_dispatcher(services: "AppServices") -> IntentDispatcher:
    """Dispatcher with every handler group registered."""
    dispatcher = IntentDispatcher(services.store, services.metrics)
    for group in HANDLER_GROUPS:
        dispatcher.register_all(group(services).intents())
    return dispatcher


__all__ = [
    "HANDLER_GROUPS",
    "HandlerGroup",
    "build_dispatcher",
]
