"""Pydantic models for the grading engine.

The grade ladder has 41 ordered buckets, best first:
A10..A1, B10..B1, C10..C1, D10..D1, F1.
"""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from src.models.product import ConsistencyRating, RiskClassification


GRADE_ORDER: tuple[str, ...] = tuple(
    [f"{family}{step}" for family in "ABCD" for step in range(10, 0, -1)] + ["F1"]
)

TOP_GRADE = GRADE_ORDER[0]
LOWEST_GRADE = GRADE_ORDER[-1]


class ScoringInputs(BaseModel):
    """Numeric and categorical inputs to the grading engine.

    Missing reviews/rating/bsr are coerced to zero rather than skipped so the
    same inputs always produce the same grade.
    """

    monthly_profit: float = 0.0
    price: float = 0.0
    margin: float = Field(default=0.0, description="Profit margin as a fraction (0.35 == 35%)")
    reviews: float = 0.0
    avg_cpc: float = 0.0
    risk_classification: RiskClassification = RiskClassification.NO_RISK
    consistency_rating: ConsistencyRating = ConsistencyRating.CONSISTENT
    profit_per_unit: float = 0.0
    bsr: float = 0.0
    rating: float = 0.0
    opportunity_score_seed: float = 0.0

    model_config = {"frozen": True}

    @field_validator(
        "monthly_profit", "price", "margin", "reviews", "avg_cpc",
        "profit_per_unit", "bsr", "rating", "opportunity_score_seed",
        mode="before",
    )
    @classmethod
    def none_as_zero(cls, v):
        """Treat absent numeric inputs as zero."""
        return 0.0 if v is None else v


class ScoreBreakdown(BaseModel):
    """Explains how a grade was reached."""

    base_grade: str
    penalty_points: int = 0
    boost_points: int = 0
    ceilings: List[str] = Field(default_factory=list)
    details: List[str] = Field(default_factory=list)


class GradeResult(BaseModel):
    """Grade bucket plus the composite score it was derived from."""

    grade: str
    score: float = Field(..., ge=0, description="Composite score; bucket k covers [k, k+1)")
    opportunity_score: int = Field(..., ge=0, le=100)
    breakdown: Optional[ScoreBreakdown] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "grade": "B3",
                "score": 22.4375,
                "opportunity_score": 55,
            }
        }
    }
