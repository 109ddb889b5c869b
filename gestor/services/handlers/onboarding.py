"""Conversational onboarding questionnaire.

The session walks a fixed list of steps, storing each answer under the
step it answers. Answering the last question builds the business profile
and the monthly cost structure on the user document.
"""

import re
from enum import Enum
from typing import Any

from gestor.core.exceptions import NotFoundError
from gestor.core.logging import get_logger
from gestor.core.security import Identity
from gestor.db.store import USERS, utc_timestamp
from gestor.services.cache import KEY_PREFIX_PROFILE
from gestor.services.handlers.base import HandlerGroup, parse_payload, require_identity
from gestor.services.handlers.profile import default_profile
from gestor.services.handlers.schemas import OnboardingAnswer
from gestor.services.metrics import Handler

logger = get_logger(__name__)

ONBOARDING_COLLECTION = "onboarding_sessions"


class OnboardingStep(str, Enum):
    WELCOME = "welcome"
    NAME = "name"
    BUSINESS_NAME = "business_name"
    GOALS = "goals"
    FIXED_COSTS_RENT = "fixed_costs_rent"
    FIXED_COSTS_UTILITIES = "fixed_costs_utilities"
    FIXED_COSTS_INTERNET = "fixed_costs_internet"
    FIXED_COSTS_SALARY = "fixed_costs_salary"
    FIXED_COSTS_OTHER = "fixed_costs_other"
    VARIABLE_COSTS_INGREDIENTS = "variable_costs_ingredients"
    VARIABLE_COSTS_PACKAGING = "variable_costs_packaging"
    PRICING_STRATEGY = "pricing_strategy"
    MONTHLY_GOAL = "monthly_goal"
    COMPLETION = "completion"


STEP_ORDER = list(OnboardingStep)

FIXED_COST_STEPS = {
    "rent": OnboardingStep.FIXED_COSTS_RENT,
    "utilities": OnboardingStep.FIXED_COSTS_UTILITIES,
    "internet": OnboardingStep.FIXED_COSTS_INTERNET,
    "salary": OnboardingStep.FIXED_COSTS_SALARY,
    "other": OnboardingStep.FIXED_COSTS_OTHER,
}
VARIABLE_COST_STEPS = {
    "ingredients": OnboardingStep.VARIABLE_COSTS_INGREDIENTS,
    "packaging": OnboardingStep.VARIABLE_COSTS_PACKAGING,
}

MESSAGES: dict[OnboardingStep, dict[str, Any]] = {
    OnboardingStep.WELCOME: {
        "message": (
            "Olá! 😊 Que bom ter você aqui! Vou te ajudar a organizar as finanças "
            "da sua confeitaria de forma simples e eficiente. Vamos começar?"
        ),
        "options": ["Sim, vamos começar! 🚀", "Tenho algumas dúvidas primeiro 🤔"],
    },
    OnboardingStep.NAME: {
        "message": "Perfeito! Como você gostaria de ser chamado(a)? 😄",
        "placeholder": "Digite seu nome...",
    },
    OnboardingStep.BUSINESS_NAME: {
        "message": "Prazer em conhecer você, {name}! ✨ Qual é o nome da sua confeitaria?",
        "placeholder": "Nome da sua confeitaria...",
    },
    OnboardingStep.GOALS: {
        "message": "Que nome lindo, {businessName}! 🍰 Qual é seu principal objetivo agora?",
        "options": [
            "Controlar melhor os custos 💰",
            "Organizar pedidos e agenda 📅",
            "Aumentar o lucro 📈",
            "Precificar produtos corretamente 🏷️",
            "Ter controle completo do negócio 🎯",
        ],
    },
    OnboardingStep.FIXED_COSTS_RENT: {
        "message": (
            "Excelente meta! 🎯 Vamos organizar seus custos fixos primeiro. Quanto você "
            "paga mensalmente de aluguel? (Se não paga, pode colocar 0)"
        ),
        "placeholder": "Ex: 1200",
        "hint": "💡 Custos fixos são aqueles que você paga todo mês, independente das vendas",
    },
    OnboardingStep.FIXED_COSTS_UTILITIES: {
        "message": "Perfeito! E quanto gasta por mês com água, luz e gás? 💡",
        "placeholder": "Ex: 300",
        "hint": "Pode ser uma média dos últimos meses",
    },
    OnboardingStep.FIXED_COSTS_INTERNET: {
        "message": "Ótimo! Quanto paga de internet e telefone por mês? 📱",
        "placeholder": "Ex: 150",
    },
    OnboardingStep.FIXED_COSTS_SALARY: {
        "message": (
            "E se você paga algum funcionário ou tem pró-labore, quanto é por mês? "
            "(Se não tem, coloque 0) 👥"
        ),
        "placeholder": "Ex: 2000",
    },
    OnboardingStep.FIXED_COSTS_OTHER: {
        "message": "Tem mais algum custo fixo? Como seguro, contador, licenças? 📋",
        "placeholder": "Ex: 200",
        "hint": "Se não tem outros custos, pode colocar 0",
    },
    OnboardingStep.VARIABLE_COSTS_INGREDIENTS: {
        "message": (
            "Agora vamos aos custos variáveis! 📊 Quanto você gasta em média por mês "
            "com ingredientes?"
        ),
        "placeholder": "Ex: 800",
        "hint": "💡 Custos variáveis mudam conforme sua produção",
    },
    OnboardingStep.VARIABLE_COSTS_PACKAGING: {
        "message": "E com embalagens, caixas, sacolas por mês? 📦",
        "placeholder": "Ex: 200",
    },
    OnboardingStep.PRICING_STRATEGY: {
        "message": "Quase terminando! 🎉 Como você define o preço dos seus produtos hoje?",
        "options": [
            "Custo + margem fixa (ex: custo + 50%) 📊",
            "Preço da concorrência 👀",
            "Feeling/experiência 💭",
            "Ainda não tenho método definido 🤷‍♀️",
        ],
    },
    OnboardingStep.MONTHLY_GOAL: {
        "message": "Última pergunta! 🏁 Qual sua meta de faturamento mensal?",
        "placeholder": "Ex: 5000",
        "hint": "Pode ser uma meta realista que você gostaria de alcançar",
    },
    OnboardingStep.COMPLETION: {
        "message": (
            "Pronto, {name}! 🎉 Sua confeitaria {businessName} está configurada! "
            "Agora você tem controle total das suas finanças. Vamos começar a usar? ✨"
        ),
    },
}


def next_step(step: OnboardingStep) -> OnboardingStep:
    index = STEP_ORDER.index(step)
    return STEP_ORDER[min(index + 1, len(STEP_ORDER) - 1)]


def format_message(template: str, answers: dict[str, str]) -> str:
    return template.replace(
        "{name}", answers.get(OnboardingStep.NAME.value, "")
    ).replace(
        "{businessName}", answers.get(OnboardingStep.BUSINESS_NAME.value, "")
    )


def prompt_for(step: OnboardingStep, answers: dict[str, str]) -> dict[str, Any]:
    """Message and input hints for ``step``; absent hints are omitted."""
    prompt = dict(MESSAGES[step])
    prompt["message"] = format_message(prompt["message"], answers)
    return prompt


# Dots grouping thousands, with no decimal comma
_THOUSANDS = re.compile(r"-?\d{1,3}(\.\d{3})+")


def parse_amount(value: str | None) -> float:
    """Number in a free-text answer ("1.200,50", "R$ 1.500", "300"), else 0."""
    if not value:
        return 0.0
    cleaned = "".join(ch for ch in value if ch.isdigit() or ch in ",.-")
    if "," in cleaned:
        cleaned = cleaned.replace(".", "").replace(",", ".")
    elif _THOUSANDS.fullmatch(cleaned):
        cleaned = cleaned.replace(".", "")
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def build_financial_structure(answers: dict[str, str]) -> dict[str, Any]:
    fixed = {name: parse_amount(answers.get(step.value)) for name, step in FIXED_COST_STEPS.items()}
    variable = {
        name: parse_amount(answers.get(step.value)) for name, step in VARIABLE_COST_STEPS.items()
    }
    total_fixed = sum(fixed.values())
    total_variable = sum(variable.values())
    return {
        "fixedCosts": fixed,
        "variableCosts": variable,
        "totals": {
            "fixedCosts": total_fixed,
            "variableCosts": total_variable,
            "totalMonthlyCosts": total_fixed + total_variable,
        },
        "createdAt": utc_timestamp(),
    }


class OnboardingHandlers(HandlerGroup):
    def intents(self) -> dict[str, Handler]:
        return {
            "startOnboarding": self.start_onboarding,
            "processOnboardingResponse": self.process_response,
            "getOnboardingStatus": self.get_status,
        }

    async def start_onboarding(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        """Start (or restart) the questionnaire at the welcome step."""
        uid = require_identity(identity).uid
        now = utc_timestamp()
        session = {
            "userId": uid,
            "currentStep": OnboardingStep.WELCOME.value,
            "collectedData": {},
            "startedAt": now,
            "lastInteraction": now,
            "isCompleted": False,
        }
        await self.store.set(ONBOARDING_COLLECTION, uid, session)
        logger.info("Onboarding started")

        return {
            "success": True,
            "session": session,
            **prompt_for(OnboardingStep.WELCOME, {}),
        }

    async def process_response(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        """Record the answer to the current step and return the next prompt."""
        identity = require_identity(identity)
        answer = parse_payload(OnboardingAnswer, payload)

        session = await self.store.get(ONBOARDING_COLLECTION, identity.uid)
        if session is None:
            raise NotFoundError("Onboarding session")

        answers: dict[str, str] = dict(session.get("collectedData") or {})
        if session.get("isCompleted"):
            return {
                "success": True,
                "message": format_message(MESSAGES[OnboardingStep.COMPLETION]["message"], answers),
                "isCompleted": True,
            }

        current = OnboardingStep(session["currentStep"])
        answers[current.value] = answer.response.strip()

        following = next_step(current)
        if following is OnboardingStep.COMPLETION:
            await self._complete(identity, answers)
            return {
                "success": True,
                "message": format_message(MESSAGES[OnboardingStep.COMPLETION]["message"], answers),
                "isCompleted": True,
            }

        await self.store.update(ONBOARDING_COLLECTION, identity.uid, {
            "currentStep": following.value,
            "collectedData": answers,
            "lastInteraction": utc_timestamp(),
        })
        return {
            "success": True,
            **prompt_for(following, answers),
            "isCompleted": False,
            "nextStep": following.value,
        }

    async def get_status(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid

        session = await self.store.get(ONBOARDING_COLLECTION, uid)
        if session is None:
            return {
                "success": True,
                "needsOnboarding": True,
                "message": "Vamos começar configurando sua confeitaria! 🍰",
            }
        if session.get("isCompleted"):
            return {
                "success": True,
                "needsOnboarding": False,
                "isCompleted": True,
                "message": "Onboarding já concluído! ✨",
            }

        current = OnboardingStep(session["currentStep"])
        return {
            "success": True,
            "needsOnboarding": True,
            "isCompleted": False,
            "currentStep": current.value,
            **prompt_for(current, session.get("collectedData") or {}),
        }

    async def _complete(self, identity: Identity, answers: dict[str, str]) -> None:
        uid = identity.uid
        financial = build_financial_structure(answers)
        display_name = answers.get(OnboardingStep.NAME.value, "")

        profile_fields: dict[str, Any] = {
            "profile": {
                "displayName": display_name,
                "businessName": answers.get(OnboardingStep.BUSINESS_NAME.value, ""),
                "goals": [answers.get(OnboardingStep.GOALS.value, "")],
                "pricingStrategy": answers.get(OnboardingStep.PRICING_STRATEGY.value, ""),
                "monthlyGoal": parse_amount(answers.get(OnboardingStep.MONTHLY_GOAL.value)),
                "onboardingCompletedAt": utc_timestamp(),
                "isOnboardingCompleted": True,
            },
            "financialStructure": financial,
        }

        existing = await self.store.get(USERS, uid)
        if existing is None:
            base = default_profile(uid, email=identity.email, display_name=display_name)
            await self.store.set(USERS, uid, {**base, **profile_fields})
        else:
            await self.store.set(USERS, uid, profile_fields, merge=True)
        await self.cache.invalidate_entity(KEY_PREFIX_PROFILE, uid)

        now = utc_timestamp()
        await self.store.update(ONBOARDING_COLLECTION, uid, {
            "currentStep": OnboardingStep.COMPLETION.value,
            "collectedData": answers,
            "isCompleted": True,
            "completedAt": now,
            "lastInteraction": now,
        })
        logger.info(
            "Onboarding completed",
            business_name=profile_fields["profile"]["businessName"],
            total_fixed_costs=financial["totals"]["fixedCosts"],
            total_variable_costs=financial["totals"]["variableCosts"],
        )
