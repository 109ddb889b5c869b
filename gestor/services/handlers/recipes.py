"""Recipe book intents."""

from typing import Any

from gestor.core.security import Identity
from gestor.services.cache import KEY_PREFIX_RECIPES
from gestor.services.handlers.base import parse_payload, require_identity
from gestor.services.handlers.collections import UserCollectionHandlers
from gestor.services.handlers.schemas import RecipeCreate, RecipeRef
from gestor.services.metrics import Handler


class RecipeHandlers(UserCollectionHandlers):
    kind = KEY_PREFIX_RECIPES
    resource = "Recipe"
    order_by = "name"
    descending = False
    limit_action = "create_recipe"

    def intents(self) -> dict[str, Handler]:
        return {
            "criarNovaReceita": self.create_recipe,
            "listarReceitas": self.list_recipes,
            "obterReceita": self.get_recipe,
            "excluirReceita": self.delete_recipe,
        }

    async def create_recipe(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        recipe = parse_payload(RecipeCreate, payload)

        recipe_id = await self.create_document(uid, {
            "name": recipe.recipeName,
            "ingredients": recipe.ingredients,
        })
        return {
            "success": True,
            "message": f'Receita "{recipe.recipeName}" criada com sucesso!',
            "recipeId": recipe_id,
        }

    async def list_recipes(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid

        recipes, cached = await self.list_documents(uid)
        return {
            "success": True,
            "message": "Receitas recuperadas com sucesso!",
            "recipes": recipes,
            "cached": cached,
        }

    async def get_recipe(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        ref = parse_payload(RecipeRef, payload)

        recipe = await self.get_document(uid, ref.recipeId)
        return {"success": True, "recipe": recipe}

    async def delete_recipe(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        ref = parse_payload(RecipeRef, payload)

        await self.delete_document(uid, ref.recipeId)
        return {"success": True, "message": "Receita excluída com sucesso!"}
