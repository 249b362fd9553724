"""Request/response schemas for doubts."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from learnhub.validators import strip_required, validate_http_url

DoubtStatus = Literal["pending", "answered", "closed"]


class DoubtCreateRequest(BaseModel):
    """Ask a question."""

    question: str = Field(..., min_length=1, max_length=1000)

    @field_validator("question")
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Trim and reject whitespace-only questions."""
        return strip_required(v, "Question")


class DoubtAnswerRequest(BaseModel):
    """Admin answer embedded in the doubt."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    url: str | None = None

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Trim and reject whitespace-only text."""
        return strip_required(v)

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str | None) -> str | None:
        """Empty means no link; anything else must be an http(s) URL."""
        if v is None or not v.strip():
            return None
        return validate_http_url(v)


class DoubtAnswer(BaseModel):
    """The response attached to an answered doubt."""

    title: str
    description: str
    url: str | None = None


class DoubtResponse(BaseModel):
    """A doubt with its answer and the coins it earned."""

    id: int
    question: str
    status: str
    asked_by: int
    asker_name: str | None = None
    asker_email: str | None = None
    response: DoubtAnswer | None = None
    answered_by: int | None = None
    answered_at: datetime | None = None
    closed_by: int | None = None
    closed_at: datetime | None = None
    coins_awarded: int = 0
    created_at: datetime
    updated_at: datetime


class DoubtListResponse(BaseModel):
    """Paginated doubt list."""

    doubts: list[DoubtResponse]
    total: int
    page: int
    per_page: int


class MyDoubtStatsResponse(BaseModel):
    """A learner's doubt counts and coin totals."""

    total: int
    pending: int
    answered: int
    closed: int
    total_coins: int
    coins_from_doubts: int
