"""
Schema and Data Models module.

This module contains Pydantic models for records and request parameters:
- FarmerRecord / GrantApplicationRecord: rows owned by the primary store
- SearchDocument: the denormalized farmer document held by the search index
- FarmerSearchQuery / GrantSearchQuery / AutocompleteQuery / SuggestionQuery:
  the recognized parameters of each search path
"""

from .records import (
    FarmerRecord,
    GrantApplicationRecord,
    GrantStatus,
    SearchDocument,
    SuggestPayload,
)
from .queries import (
    AutocompleteQuery,
    FarmerSearchQuery,
    GrantSearchQuery,
    SuggestionQuery,
    SuggestionScope,
)

__all__ = [
    "FarmerRecord",
    "GrantApplicationRecord",
    "GrantStatus",
    "SearchDocument",
    "SuggestPayload",
    "AutocompleteQuery",
    "FarmerSearchQuery",
    "GrantSearchQuery",
    "SuggestionQuery",
    "SuggestionScope",
]
