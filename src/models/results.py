"""Explicit outcome values returned by the recalculation orchestrator.

Failures are returned, not raised, so callers can tell "nothing to do"
apart from "something broke".
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from src.models.market import MarketOverrideRecord, MarketStatistics


class FailureKind(str, Enum):
    """Why an operation did not complete."""
    FETCH_FAILURE = "fetch_failure"
    MARKET_NOT_FOUND = "market_not_found"
    PERSIST_FAILURE = "persist_failure"
    CACHE_FAILURE = "cache_failure"


@dataclass(frozen=True)
class Failure:
    """A failed operation; previously persisted state is untouched."""

    kind: FailureKind
    message: str
    market_id: Optional[UUID] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for task responses."""
        result = {
            "status": "error",
            "error_kind": self.kind.value,
            "message": self.message,
        }
        if self.market_id:
            result["market_id"] = str(self.market_id)
        return result


class RecalculationDebug(BaseModel):
    """Grade transition surfaced to the UI after a recalculation."""

    previous_grade: Optional[str] = None
    new_grade: str


class RecalculationOutcome(BaseModel):
    """Successful market recalculation."""

    market_id: UUID
    keyword: str
    market_override: MarketOverrideRecord
    statistics: MarketStatistics
    overridden_product_count: int = Field(default=0, ge=0)
    debug: RecalculationDebug

    @property
    def grade(self) -> str:
        return self.statistics.market_grade

    def to_response(self) -> dict:
        """Payload handed to the request-handling layer."""
        return {
            "status": "success",
            "market_id": str(self.market_id),
            "keyword": self.keyword,
            "grade": self.grade,
            "statistics": self.statistics.model_dump(mode="json"),
            "overridden_product_count": self.overridden_product_count,
            "debug": self.debug.model_dump(mode="json"),
        }


class OverrideWriteOutcome(BaseModel):
    """Result of writing or deleting product overrides.

    The override write itself succeeded; individual market recalculations
    may still have failed and are listed in ``failures``.
    """

    owner_id: UUID
    overrides_written: int = Field(default=0, ge=0)
    recalculations: List[RecalculationOutcome] = Field(default_factory=list)
    failures: List[dict] = Field(default_factory=list)
    cache_invalidated: bool = False

    def to_response(self) -> dict:
        return {
            "status": "success" if not self.failures else "partial_success",
            "overrides_written": self.overrides_written,
            "markets_recalculated": len(self.recalculations),
            "affected_markets": [r.to_response() for r in self.recalculations],
            "failures": self.failures,
            "cache_invalidated": self.cache_invalidated,
        }


RecalculationResult = Union[RecalculationOutcome, Failure]
