"""Pydantic schemas for the passcode bridge API.

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecentItem(BaseModel):
    """Recent passcode mail - summary view"""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Backend message id (Gmail id or IMAP UID)")
    internal_date: Optional[str] = Field(None, alias="internalDate", description="Receipt time, ISO-8601 UTC")
    subject: str = ""
    from_: str = Field("", alias="from")
    to: str = ""


class RecentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    count: int
    items: List[RecentItem] = Field(default_factory=list, alias="list")


class CodeResponse(BaseModel):
    """Passcode lookup result.

    ``reason``, ``where`` and ``internalDate`` are only present when they
    apply; ``code`` is always present and null when nothing was found.
    """
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    found: bool
    code: Optional[str] = None
    reason: Optional[str] = None
    where: Optional[str] = None
    internal_date: Optional[str] = Field(None, alias="internalDate")
    min_ts: int = Field(..., alias="minTs", description="Lower bound applied, epoch ms")
    min_ts_iso: str = Field(..., alias="minTsIso")


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
