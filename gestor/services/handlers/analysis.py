"""AI financial analysis intent."""

from typing import Any

from gestor.core.logging import get_logger
from gestor.core.security import Identity
from gestor.db.store import user_collection
from gestor.services.cache import KEY_PREFIX_EXPENSES, KEY_PREFIX_ORDERS
from gestor.services.handlers.base import HandlerGroup, parse_payload, require_identity
from gestor.services.handlers.schemas import AnalysisRequest
from gestor.services.metrics import Handler

logger = get_logger(__name__)

ANALYSIS_SAMPLE_SIZE = 100

SYSTEM_PROMPT = (
    "Você é um analista financeiro especialista em confeitaria. Responda de forma "
    "clara e objetiva, oferecendo insights práticos e acionáveis."
)


def summarize(expenses: list[dict[str, Any]], orders: list[dict[str, Any]]) -> dict[str, Any]:
    total_expenses = sum(float(e.get("value") or 0) for e in expenses)
    total_revenue = sum(float(o.get("value") or 0) for o in orders)
    return {
        "totalExpenses": total_expenses,
        "totalRevenue": total_revenue,
        "profit": total_revenue - total_expenses,
        "expenseCount": len(expenses),
        "orderCount": len(orders),
    }


def build_prompt(query: str, summary: dict[str, Any]) -> str:
    return (
        "Dados financeiros do usuário:\n"
        f"- Total de despesas: R$ {summary['totalExpenses']:.2f}\n"
        f"- Total de receitas: R$ {summary['totalRevenue']:.2f}\n"
        f"- Lucro: R$ {summary['profit']:.2f}\n"
        f"- Número de despesas: {summary['expenseCount']}\n"
        f"- Número de pedidos: {summary['orderCount']}\n\n"
        f'Pergunta do usuário: "{query}"\n\n'
        "Forneça uma análise detalhada e sugestões práticas para melhorar o negócio."
    )


class AnalysisHandlers(HandlerGroup):
    def intents(self) -> dict[str, Handler]:
        return {"gerarAnalise": self.generate_analysis}

    async def _entities(self, uid: str, kind: str) -> list[dict[str, Any]]:
        cached = await self.cache.get(self.cache.entity_key(kind, uid))
        if cached is not None:
            return cached
        return await self.store.query(
            user_collection(uid, kind),
            order_by="createdAt",
            descending=True,
            limit=ANALYSIS_SAMPLE_SIZE,
        )

    async def generate_analysis(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        """Answer a question about the caller's finances.

        Results are cached per user and normalized question.
        """
        uid = require_identity(identity).uid
        request = parse_payload(AnalysisRequest, payload)

        cached = await self.cache.get_analysis(uid, request.query)
        if cached is not None:
            return {
                "success": True,
                "message": "Análise recuperada do cache!",
                **cached,
                "cached": True,
            }

        expenses = await self._entities(uid, KEY_PREFIX_EXPENSES)
        orders = await self._entities(uid, KEY_PREFIX_ORDERS)
        summary = summarize(expenses, orders)

        completion = await self.services.llm.generate_text(
            build_prompt(request.query, summary),
            system_prompt=SYSTEM_PROMPT,
        )
        result = {
            "analysis": completion.text or "Análise não disponível",
            "summary": summary,
        }
        await self.cache.set_analysis(uid, request.query, result)
        logger.info("Analysis generated", provider=completion.provider)

        return {
            "success": True,
            "message": "Análise gerada com sucesso!",
            **result,
            "cached": False,
        }
