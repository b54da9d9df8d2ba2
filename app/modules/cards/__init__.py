"""Cards module exports."""

from .models import (
    Card,
    CardCreate,
    CardFindFilter,
    CardFindOptions,
    CardUpdate,
    TagRef,
)
from .finder import CardFinder
from .tags import TagDiff, TagSetReconciler
from .validation import validate_schema

__all__ = [
    "Card",
    "CardCreate",
    "CardFindFilter",
    "CardFindOptions",
    "CardUpdate",
    "TagRef",
    "CardFinder",
    "TagDiff",
    "TagSetReconciler",
    "validate_schema",
]
