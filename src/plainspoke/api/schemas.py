"""Request and response bodies for the HTTP surface."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HumanizeBody(_CamelModel):
    # Blank text is rejected by validation with a 400, not by the schema.
    text: str = ""
    examples: str | None = None


class SimpleHumanizeBody(_CamelModel):
    text: str = ""
    mode: str = "default"
    language: str = Field(default="en", max_length=8)


class SimpleHumanizeResponse(_CamelModel):
    output: str
    credits_used: int
    credits_remaining: int


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    error: str
