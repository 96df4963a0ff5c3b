"""
Recognized request parameters for each query path.

Only the fields declared here ever reach SQL, the index or a cache key;
anything else in the query string is dropped during validation.
"""
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from .records import GrantStatus, normalize_status


class SuggestionScope(str, Enum):
    ALL = "all"
    NAME = "name"
    LOCATION = "location"
    CROP = "crop"


class _QueryParams(BaseModel):
    model_config = {"extra": "ignore"}

    # ---- Trim strings, treat blanks as absent so defaults apply ----
    @model_validator(mode="before")
    @classmethod
    def drop_blank(cls, data: Any):
        if not isinstance(data, dict):
            return data
        cleaned = {}
        for key, value in data.items():
            if isinstance(value, str):
                value = value.strip()
                if not value:
                    continue
            if value is None:
                continue
            cleaned[key] = value
        return cleaned

    def cache_params(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class _PagedParams(_QueryParams):
    page: int = Field(1, ge=1)
    limit: int = Field(DEFAULT_PAGE_SIZE, ge=1)

    @field_validator("limit", mode="after")
    @classmethod
    def cap_limit(cls, v: int) -> int:
        return min(v, MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class FarmerSearchQuery(_PagedParams):
    q: Optional[str] = None
    location: Optional[str] = None
    crop_type: Optional[str] = None
    farm_size: Optional[str] = None

    # Substring filters match case-insensitively, so fold them for the cache key
    @field_validator("q", "location", "crop_type", mode="after")
    @classmethod
    def fold_case(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


class GrantSearchQuery(_PagedParams):
    q: Optional[str] = None
    grant_type: Optional[str] = None
    status: Optional[GrantStatus] = None

    @field_validator("q", mode="after")
    @classmethod
    def fold_case(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

    @field_validator("status", mode="before")
    @classmethod
    def status_spelling(cls, v):
        return normalize_status(v)


class AutocompleteQuery(_QueryParams):
    q: str = ""
    type: SuggestionScope = SuggestionScope.ALL

    @field_validator("q", mode="after")
    @classmethod
    def fold_case(cls, v: str) -> str:
        return v.lower()

    @field_validator("type", mode="before")
    @classmethod
    def lower_type(cls, v):
        return v.lower() if isinstance(v, str) else v

    @property
    def scope(self) -> Optional[SuggestionScope]:
        return None if self.type == SuggestionScope.ALL else self.type


class SuggestionQuery(_QueryParams):
    q: str = ""
    type: Optional[str] = None

    @field_validator("q", "type", mode="after")
    @classmethod
    def fold_case(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v
