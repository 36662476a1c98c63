"""Grading engine package."""

from src.services.grading.engine import (
    compare_grades,
    grade,
    grade_for_score,
    grade_rank,
    is_grade_equal_or_better,
    is_high_grade,
    scoring_inputs_for_product,
)

__all__ = [
    "grade",
    "grade_rank",
    "grade_for_score",
    "compare_grades",
    "is_grade_equal_or_better",
    "is_high_grade",
    "scoring_inputs_for_product",
]
