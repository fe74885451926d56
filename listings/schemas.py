"""
Pydantic schemas for the listings API.
"""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ListingOut(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    kind: Optional[Any] = None
    type: Optional[Any] = None
    title: Optional[Any] = None
    location: Optional[Any] = None
    price: Optional[Any] = None
    area: Optional[Any] = None
    dorm: Optional[Any] = None
    parking: Optional[Any] = None
    bath: Optional[Any] = None
    details: Any = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)


class CreateListingResponse(BaseModel):
    message: str
    id: int


class DeleteListingResponse(BaseModel):
    ok: Literal[True] = True


class RemoteDirResponse(BaseModel):
    dir: str
    list: List[str]


class StoreInfoResponse(BaseModel):
    remote_db: str
    size: int
    head: str
