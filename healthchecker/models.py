from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, RootModel, field_validator


def _header_text(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Check(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    url: AnyHttpUrl
    method: str = "GET"
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None
    # Filled in by grouping.group_into_domains, never by the config file.
    domain: Optional[str] = None

    @field_validator("method", mode="before")
    @classmethod
    def _normalize_method(cls, v):
        if v is None:
            return "GET"
        method = str(v).strip().upper()
        return method or "GET"

    @field_validator("headers", mode="before")
    @classmethod
    def _none_headers(cls, v):
        if v is None:
            return {}
        if isinstance(v, dict):
            # YAML turns `X-Retry: 3` into an int; header values are text.
            return {str(key): _header_text(value) for key, value in v.items()}
        return v


class Registry(RootModel[List[Check]]):
    root: List[Check]
