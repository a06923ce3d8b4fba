# app/api/models/ppv.py
from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class PPVContentType(str, Enum):
    SONG = "song"
    VIDEO = "video"


class PPVContent(BaseModel):
    """Pay-per-view media unlocked individually per payment."""
    id: str
    name: str
    priceUSD: float = Field(..., description="Unlock price in USD.")
    type: PPVContentType
    url: str = Field(..., description="Public page of the media, used to build the embed.")

    class Config:
        frozen = True
        use_enum_values = True


class PPVListResponse(BaseModel):
    content: List[PPVContent]
