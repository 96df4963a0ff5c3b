import json
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, field_validator


class GrantStatus(str, Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under-review"
    APPROVED = "approved"
    REJECTED = "rejected"


def normalize_status(v: Any) -> Any:
    """Map "Under_Review", "under review" and the like onto the stored spelling."""
    if not isinstance(v, str):
        return v
    key = "-".join(v.strip().lower().replace("_", " ").split())
    try:
        return GrantStatus(key)
    except ValueError:
        return v


def _decode_labels(v: Any) -> List[str]:
    # Registration writes crop_types as JSON text; a jsonb column arrives already decoded
    if v is None:
        return []
    if isinstance(v, str):
        text = v.strip()
        if not text:
            return []
        try:
            v = json.loads(text)
        except json.JSONDecodeError:
            return [text]
        if isinstance(v, str):
            return [v]
    if isinstance(v, (list, tuple)):
        return [str(item) for item in v if item is not None]
    return [str(v)]


class FarmerRecord(BaseModel):
    id: Union[int, str]
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    farm_location: Optional[str] = None
    farm_size: Optional[str] = None
    crop_types: List[str] = []
    created_at: Optional[datetime] = None

    @field_validator("farm_size", mode="before")
    @classmethod
    def size_as_text(cls, v):
        return None if v is None else str(v)

    @field_validator("crop_types", mode="before")
    @classmethod
    def decode_crop_types(cls, v):
        return _decode_labels(v)


class GrantApplicationRecord(BaseModel):
    id: Union[int, str]
    farmer_id: Union[int, str]
    grant_type: str
    amount_requested: Optional[float] = None
    purpose: Optional[str] = None
    documents: List[Any] = []
    # Transitions are owned elsewhere, so unknown statuses pass through as text
    status: Union[GrantStatus, str] = GrantStatus.PENDING
    created_at: Optional[datetime] = None
    farmer_name: Optional[str] = None
    farmer_email: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def known_status(cls, v):
        return normalize_status(v)

    @field_validator("documents", mode="before")
    @classmethod
    def decode_documents(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return json.loads(v) if v.strip() else []
        return v


class SuggestPayload(BaseModel):
    input: List[str]
    weight: int = 1


class SearchDocument(BaseModel):
    """Denormalized copy of a farmer as stored in the search index."""

    id: Union[int, str]
    name: str
    email: Optional[str] = None
    farm_location: Optional[str] = None
    farm_size: Optional[str] = None
    crop_types: List[str] = []
    created_at: Optional[datetime] = None
    suggest: SuggestPayload

    @classmethod
    def from_record(cls, record: FarmerRecord) -> "SearchDocument":
        candidates = [record.name, record.farm_location, *record.crop_types]
        inputs = [c.strip() for c in candidates if c and c.strip()]
        return cls(
            id=record.id,
            name=record.name,
            email=record.email,
            farm_location=record.farm_location,
            farm_size=record.farm_size,
            crop_types=record.crop_types,
            created_at=record.created_at,
            suggest=SuggestPayload(input=inputs, weight=1),
        )
