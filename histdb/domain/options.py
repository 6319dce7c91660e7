"""Input models for the read paths (list / search / summary / stats)."""
from __future__ import annotations

import os
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..errors import QueryOptionsError
from .coerce import I64_MAX, I64_MIN, clean_text

# anything bound into SQL must fit a SQLite INTEGER
I64 = dict(ge=I64_MIN, le=I64_MAX)


class SessionContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    salt: int = Field(..., **I64)
    ppid: int = Field(..., **I64)


class LocationFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    pwd: str
    mode: Literal["here", "under"] = "here"

    @field_validator("pwd")
    @classmethod
    def _storable_pwd(cls, v: str) -> str:
        return clean_text(v)


class _BaseOptions(BaseModel):
    limit: int = Field(100, ge=0)  # capped to MAX_LIMIT when the query is built
    show_all: bool = False  # no effective cap on rows
    session: Optional[SessionContext] = None
    location: Optional[LocationFilter] = None

    @field_validator("query", check_fields=False)
    @classmethod
    def _storable_query(cls, v):
        return None if v is None else clean_text(v)


class ListOptions(_BaseOptions):
    query: Optional[str] = None
    offset: int = Field(0, ge=0, le=I64_MAX)


class SearchOptions(_BaseOptions):
    query: str
    offset: int = Field(0, ge=0, le=I64_MAX)
    since_epoch: Optional[int] = Field(None, **I64)
    days: Optional[int] = Field(None, gt=0, le=I64_MAX)
    now: Optional[int] = Field(None, **I64)

    @model_validator(mode="after")
    def _one_time_bound(self):
        if self.since_epoch is not None and self.days is not None:
            raise ValueError("since_epoch and days are mutually exclusive")
        return self


class SummaryOptions(_BaseOptions):
    query: Optional[str] = None
    starts: bool = False  # prefix match instead of substring
    group_pwd: bool = False


class StatsOptions(_BaseOptions):
    kind: Literal["top", "dirs", "daily"] = "top"
    days: int = Field(30, gt=0, le=I64_MAX)
    now: Optional[int] = Field(None, **I64)


def parse_options(cls, **kwargs):
    try:
        return cls(**kwargs)
    except ValidationError as e:
        raise QueryOptionsError(str(e)) from e


def session_from_env(
    environ: Mapping[str, str] | None = None,
    salt_env: str = "SDBH_SALT",
    ppid_env: str = "SDBH_PPID",
) -> SessionContext | None:
    """Current shell session from the hook's variables; None when absent or malformed."""
    env = os.environ if environ is None else environ
    try:
        return SessionContext(salt=int(env[salt_env].strip()), ppid=int(env[ppid_env].strip()))
    except (KeyError, ValueError, AttributeError):
        # ValidationError is a ValueError: out-of-range ids count as malformed
        return None
