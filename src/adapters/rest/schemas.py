"""Pydantic models for REST API request/response validation."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# --- Agent ---

class RunBody(BaseModel):
    query: str = Field(..., min_length=1, max_length=4000)


class SuggestedActionOut(_CamelOut):
    type: str
    label: str
    data: str


class AgentResponseOut(_CamelOut):
    extracted_data: Optional[str] = Field(default=None, alias="extractedData")
    reference_note_ids: list[str] = Field(default_factory=list, alias="referenceNoteIds")
    narrative: str
    data_type: str = Field(alias="dataType")
    confidence: float
    suggested_actions: list[SuggestedActionOut] = Field(default_factory=list, alias="suggestedActions")
    status: str
    warnings: list[str] = Field(default_factory=list)
    error: Optional[str] = None


class TurnOut(BaseModel):
    role: str
    text: str


class HistoryOut(BaseModel):
    summary: str
    turns: list[TurnOut]


class UsageOut(_CamelOut):
    usage: int
    quota: int
    percentage: float
    should_clear: bool = Field(alias="shouldClear")
