"""Pydantic schemas for API request and response models."""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = ""
    want_citations: bool = Field(default=False, alias="citations")

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value: Any) -> str:
        if not value:
            return ""
        return str(value)

    @field_validator("want_citations", mode="before")
    @classmethod
    def _coerce_citations(cls, value: Any) -> bool:
        return bool(value)


class ChatResponse(BaseModel):
    success: bool
    answer: str = ""
    citations: Optional[List[str]] = None
    error: Optional[str] = None
