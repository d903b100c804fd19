"""
Storefront Reviews — Request Commands
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from engines.review.models import MAX_RATING, MIN_RATING

MAX_COMMENT_LENGTH = 2000


@dataclass(frozen=True)
class ReviewSubmitRequest:
    order_id: Any
    rating: int
    comment: str = ""

    def __post_init__(self):
        if not self.order_id:
            raise ValueError("order_id is required.")
        try:
            rating = int(self.rating)
        except (TypeError, ValueError) as exc:
            raise ValueError("rating must be an integer.") from exc
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValueError(f"rating must be between {MIN_RATING} and {MAX_RATING}.")
        object.__setattr__(self, "rating", rating)

        comment = (self.comment or "").strip()
        if len(comment) > MAX_COMMENT_LENGTH:
            raise ValueError(f"comment must be at most {MAX_COMMENT_LENGTH} characters.")
        object.__setattr__(self, "comment", comment)
