from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from websense.tools import web_utils

# --- Requests ---


class AnswerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(min_length=3, max_length=1000)
    max_links: int = Field(default=5, ge=1, le=10, alias="maxLinks")
    site_filter: list[str] | None = Field(default=None, alias="siteFilter")

    @field_validator("site_filter")
    @classmethod
    def _site_filter_urls(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return value
        invalid = [site for site in value if not web_utils.is_valid_url(site)]
        if invalid:
            raise ValueError(f"siteFilter entries must be http(s) URLs: {invalid}")
        return value


# --- Responses ---


class Source(BaseModel):
    title: str
    url: str


class ResponseMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    took_ms: int = Field(ge=0, alias="tookMs")
    partial: bool = False


class AnswerResponse(BaseModel):
    answer: str
    sources: list[Source]
    meta: ResponseMeta


class HealthChecks(BaseModel):
    search: bool
    llm: bool


class HealthResponse(BaseModel):
    status: Literal["healthy", "unhealthy"]
    timestamp: str
    checks: HealthChecks
