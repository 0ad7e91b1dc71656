"""Pydantic schemas for the chat endpoint."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class ChatMessage(BaseModel):
    """A single message in the conversation sent to the upstream API."""

    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Body of ``POST /chat``."""

    message: StrictStr = Field(
        ...,
        min_length=1,
        description="The user's question.",
    )


class ChatResponse(BaseModel):
    """Successful chat answer.

    ``notRelated`` is only present when the question was refused as out of
    scope; the refusal itself is a normal 200 response.
    """

    model_config = ConfigDict(populate_by_name=True)

    response: str = Field(..., description="Answer text returned verbatim from the upstream API.")
    not_related: bool | None = Field(
        default=None,
        alias="notRelated",
        description="True when the question is not about Northstowe.",
    )


class ErrorResponse(BaseModel):
    """Error payload shared by every non-2xx response (documentation only)."""

    model_config = ConfigDict(populate_by_name=True)

    error: str = Field(..., description="Human-readable error message.")
    code: str = Field(..., description="Stable machine-readable error code.")
    request_id: str | None = Field(default=None, description="Correlation id for logs.")
    rate_limited: bool | None = Field(
        default=None,
        alias="rateLimited",
        description="True when the client exceeded its request budget.",
    )
