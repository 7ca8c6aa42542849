"""Cursor pagination checks shared by every paginated operation.

An operation is paginated when its query schema declares `limit`. Runs
after authentication and before request schema validation.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from ..errors import PaginationExclusivityError, PaginationRangeError, RequestPart, SchemaViolation
from ..utils.numbers import parse_int
from .loader import OpenApiOperationDescriptor

MIN_LIMIT = 1
MAX_LIMIT = 200
DEFAULT_LIMIT = 10

PAGINATION_PARAMS = ("limit", "startingAfter", "endingBefore")


@dataclass(frozen=True)
class PaginationWindow:
    limit: int = DEFAULT_LIMIT
    starting_after: Optional[str] = None
    ending_before: Optional[str] = None


class PaginationGuard:
    def check(self, op: OpenApiOperationDescriptor, query: Mapping[str, str]) -> Optional[PaginationWindow]:
        if not op.is_paginated:
            return None
        self._reject_repeated(query)
        limit = self._limit(query.get("limit"))
        starting_after = query.get("startingAfter")
        ending_before = query.get("endingBefore")
        if starting_after is not None and ending_before is not None:
            raise PaginationExclusivityError()
        return PaginationWindow(limit=limit, starting_after=starting_after, ending_before=ending_before)

    @staticmethod
    def _reject_repeated(query: Mapping[str, str]) -> None:
        # multi-dicts (Starlette QueryParams) hide every value but the last behind .get
        getlist = getattr(query, "getlist", None)
        if getlist is None:
            return
        for name in PAGINATION_PARAMS:
            if len(getlist(name)) > 1:
                raise SchemaViolation(
                    f"Request schema validation error: {name} must not be repeated",
                    request_part=RequestPart.QUERYSTRING,
                    property_path=f"/{name}",
                    keyword="repeated",
                )

    @staticmethod
    def _limit(raw: Optional[str]) -> int:
        if raw is None:
            return DEFAULT_LIMIT
        raw = str(raw).strip()
        value = parse_int(raw)
        if value is None:
            raise PaginationRangeError("Request schema validation error: limit must be integer")
        if value < MIN_LIMIT:
            raise PaginationRangeError(f"Request schema validation error: limit must be >= {MIN_LIMIT}")
        if value > MAX_LIMIT:
            raise PaginationRangeError(f"Request schema validation error: limit must be <= {MAX_LIMIT}")
        return value
