"""
agent.tools.list_categories - List the categories notes are filed under.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from agent.tools.base import BaseTool
from application.context import SessionContext
from domain.models import ToolKind
from domain.ports import NoteStorePort


class ListCategoriesInput(BaseModel):
    """list_categories takes no arguments."""


class ListCategoriesTool(BaseTool):

    kind = ToolKind.LIST_CATEGORIES
    description = "List all note categories. Use when the user asks about their categories."

    def __init__(self, store: NoteStorePort):
        self._store = store

    def get_schema(self) -> type[BaseModel]:
        return ListCategoriesInput

    async def execute(self, ctx: SessionContext, **kwargs) -> dict[str, Any]:
        categories = await self._store.list_categories()
        return {"success": True, "categories": categories}
