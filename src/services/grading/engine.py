"""Grading engine: scoring inputs -> letter grade and opportunity score.

The composite score is a position on a 41-rung ladder (F1 = rung 0 up to
A10 = rung 40). A composite in [k, k+1) lands in rung k, so bucket
boundaries are fixed, monotonic and non-overlapping.

Scoring steps:
    1. Profit rung: monthly profit placed on the profit ladder, linearly
       interpolated between steps so the composite is continuous in profit
    2. Penalty points: competition, CPC, risk, margin, BSR, rating, consistency
    3. Boost points: cheap CPC, strong margins, low competition, AI seed, BSR
    4. Composite = rung + boosts - penalties, clamped into the ladder
    5. Ceilings: Banned risk, low price/margin, and the A10 gate
"""
import math
from typing import List, Optional, Tuple

from src.models.grading import GRADE_ORDER, GradeResult, ScoreBreakdown, ScoringInputs
from src.models.product import ConsistencyRating, Product, RiskClassification


# Minimum monthly profit for each grade, best first
PROFIT_THRESHOLDS = {
    "A10": 100000, "A9": 74000, "A8": 62000, "A7": 50000, "A6": 40000, "A5": 32000,
    "A4": 26000, "A3": 20000, "A2": 16000, "A1": 12000,
    "B10": 10000, "B9": 8500, "B8": 7000, "B7": 6000, "B6": 5000, "B5": 4200,
    "B4": 3500, "B3": 3000, "B2": 2500, "B1": 2000,
    "C10": 1700, "C9": 1400, "C8": 1200, "C7": 1000, "C6": 850, "C5": 700,
    "C4": 600, "C3": 500, "C2": 400, "C1": 300,
    "D10": 250, "D9": 200, "D8": 170, "D7": 140, "D6": 120, "D5": 100,
    "D4": 85, "D3": 70, "D2": 60, "D1": 50,
    "F1": 0,
}

TOP_RUNG = len(GRADE_ORDER) - 1
# Highest composite inside a rung
RUNG_SPAN = 0.99
SCORE_PRECISION = 4

# Ladder thresholds indexed by rung (rung 0 == F1)
_LADDER: Tuple[int, ...] = tuple(PROFIT_THRESHOLDS[g] for g in reversed(GRADE_ORDER))

BANNED_CEILING = "F1"
LOW_PRICE_OR_MARGIN_CEILING = "D1"
MIN_PRICE = 25.0
MIN_MARGIN = 0.15

CONSISTENCY_PENALTIES = {
    ConsistencyRating.CONSISTENT: 0,
    ConsistencyRating.SEASONAL: 2,
    ConsistencyRating.TRENDY: 5,
}

RISK_PENALTIES = {
    RiskClassification.NO_RISK: 0,
    RiskClassification.ELECTRIC: 4,
    RiskClassification.BREAKABLE: 5,
    # Banned is handled by a ceiling, not points
    RiskClassification.BANNED: 0,
}


def grade_rank(grade: str) -> int:
    """Rung of a grade: F1 == 0 up to A10 == 40."""
    return TOP_RUNG - GRADE_ORDER.index(grade)


def grade_for_score(score: float) -> str:
    """Map a composite score onto its bucket."""
    rung = max(0, min(TOP_RUNG, int(math.floor(score))))
    return GRADE_ORDER[TOP_RUNG - rung]


def compare_grades(grade_a: str, grade_b: str) -> int:
    """Negative if grade_a is better, positive if grade_b is better, 0 if equal.

    Unknown labels sort after every valid grade.
    """
    known_a = grade_a in GRADE_ORDER
    known_b = grade_b in GRADE_ORDER
    if not known_a and not known_b:
        return 0
    if not known_a:
        return 1
    if not known_b:
        return -1
    return GRADE_ORDER.index(grade_a) - GRADE_ORDER.index(grade_b)


def is_grade_equal_or_better(grade: Optional[str], min_grade: str) -> bool:
    """Minimum-grade filter: the grade or anything better passes."""
    if not grade:
        return False
    return compare_grades(grade, min_grade) <= 0


def is_high_grade(grade: Optional[str]) -> bool:
    """A or B family."""
    return bool(grade) and grade.upper()[0] in ("A", "B")


def opportunity_score_for(score: float) -> int:
    """Normalize a composite score onto 0-100."""
    return max(0, min(100, int(round(score / len(GRADE_ORDER) * 100))))


def _profit_rung(monthly_profit: float) -> float:
    """Continuous position of the profit on the ladder."""
    if monthly_profit <= 0:
        return 0.0
    rung = 0
    for index, threshold in enumerate(_LADDER):
        if monthly_profit >= threshold:
            rung = index
        else:
            break
    if rung == TOP_RUNG:
        fraction = (monthly_profit - _LADDER[TOP_RUNG]) / _LADDER[TOP_RUNG]
    else:
        fraction = (monthly_profit - _LADDER[rung]) / (_LADDER[rung + 1] - _LADDER[rung])
    return rung + min(fraction, RUNG_SPAN)


def _penalties(inputs: ScoringInputs) -> Tuple[int, List[str]]:
    total = 0
    details: List[str] = []

    if inputs.reviews >= 500:
        total += 9
        details.append("High competition: 500+ reviews (-9 pts)")
    elif inputs.reviews >= 200:
        total += 5
        details.append("Medium competition: 200+ reviews (-5 pts)")
    elif inputs.reviews >= 50:
        total += 1
        details.append("Low competition: 50+ reviews (-1 pt)")

    if inputs.avg_cpc >= 2.50:
        total += 3
        details.append("High advertising cost: $2.50+ CPC (-3 pts)")

    risk_points = RISK_PENALTIES[inputs.risk_classification]
    if risk_points:
        total += risk_points
        details.append(f"{inputs.risk_classification.value} product risk (-{risk_points} pts)")

    if inputs.margin < 0.25:
        total += 3
        details.append("Low margin: <25% (-3 pts)")
    if inputs.margin < 0.20:
        total += 3
        details.append("Very low margin: <20% (-3 pts)")

    if inputs.bsr > 100000:
        total += 2
        details.append("Poor BSR: >100,000 (-2 pts)")

    if 0 < inputs.rating < 4.0:
        total += 3
        details.append("Low rating: <4.0 stars (-3 pts)")

    consistency_points = CONSISTENCY_PENALTIES[inputs.consistency_rating]
    if consistency_points:
        total += consistency_points
        details.append(f"{inputs.consistency_rating.value} demand (-{consistency_points} pts)")

    return total, details


def _boosts(inputs: ScoringInputs) -> Tuple[int, List[str]]:
    total = 0
    details: List[str] = []

    if inputs.avg_cpc < 0.50:
        total += 2
        details.append("Low advertising cost: <$0.50 CPC (+2 pts)")
    elif inputs.avg_cpc < 1.00:
        total += 1
        details.append("Moderate advertising cost: <$1.00 CPC (+1 pt)")

    if inputs.margin >= 0.45 and inputs.profit_per_unit >= 0.20:
        total += 4
        details.append("Excellent margins: 45%+ margin + 20%+ PPU (+4 pts)")
    elif inputs.margin >= 0.35:
        total += 2
        details.append("Good margin: 35%+ (+2 pts)")
    elif inputs.margin >= 0.30:
        total += 1
        details.append("Decent margin: 30%+ (+1 pt)")

    if inputs.reviews < 20:
        total += 2
        details.append("Very low competition: <20 reviews (+2 pts)")

    if inputs.opportunity_score_seed >= 8:
        total += 2
        details.append("High AI opportunity score: 8+ (+2 pts)")

    if 0 < inputs.bsr < 10000:
        total += 1
        details.append("Good BSR: <10,000 (+1 pt)")

    return total, details


def _passes_a10_gate(inputs: ScoringInputs) -> bool:
    return (
        inputs.monthly_profit >= PROFIT_THRESHOLDS["A10"]
        and inputs.reviews < 50
        and inputs.avg_cpc < 0.50
        and inputs.margin >= 0.50
        and inputs.profit_per_unit >= 0.20
    )


def _ceiling_score(grade: str) -> float:
    return grade_rank(grade) + RUNG_SPAN


def grade(inputs: ScoringInputs, explain: bool = False) -> GradeResult:
    """Grade one set of scoring inputs.

    Deterministic: identical inputs always give the identical result.

    Args:
        inputs: Product-level or market-level scoring inputs
        explain: Attach a ScoreBreakdown describing every adjustment

    Returns:
        GradeResult with the bucket, the composite score and the 0-100
        opportunity score
    """
    rung = _profit_rung(inputs.monthly_profit)
    base_grade = grade_for_score(rung)
    details = [f"Base grade from ${inputs.monthly_profit:,.0f}/month profit: {base_grade}"]

    penalty_points, penalty_details = _penalties(inputs)
    boost_points, boost_details = _boosts(inputs)
    details.extend(penalty_details)
    details.extend(boost_details)

    if inputs.monthly_profit <= 0:
        score = 0.0
        details.append("No profit: lowest bucket")
    else:
        net = boost_points - penalty_points
        details.append(f"Net adjustment: {net} points")
        score = max(0.0, min(rung + net, TOP_RUNG + RUNG_SPAN))
    score = round(score, SCORE_PRECISION)

    ceilings: List[str] = []
    if inputs.risk_classification == RiskClassification.BANNED:
        ceilings.append(f"Prohibited product: capped at {BANNED_CEILING}")
        score = min(score, _ceiling_score(BANNED_CEILING))
    if inputs.price < MIN_PRICE:
        ceilings.append(f"Price below ${MIN_PRICE:.0f}: capped at {LOW_PRICE_OR_MARGIN_CEILING}")
        score = min(score, _ceiling_score(LOW_PRICE_OR_MARGIN_CEILING))
    if inputs.margin < MIN_MARGIN:
        ceilings.append(f"Margin below {MIN_MARGIN:.0%}: capped at {LOW_PRICE_OR_MARGIN_CEILING}")
        score = min(score, _ceiling_score(LOW_PRICE_OR_MARGIN_CEILING))
    if grade_for_score(score) == GRADE_ORDER[0] and not _passes_a10_gate(inputs):
        ceilings.append(f"A10 gate not met: capped at {GRADE_ORDER[1]}")
        score = min(score, _ceiling_score(GRADE_ORDER[1]))

    final_grade = grade_for_score(score)
    breakdown = None
    if explain:
        breakdown = ScoreBreakdown(
            base_grade=base_grade,
            penalty_points=penalty_points,
            boost_points=boost_points,
            ceilings=ceilings,
            details=details + ceilings,
        )

    return GradeResult(
        grade=final_grade,
        score=score,
        opportunity_score=opportunity_score_for(score),
        breakdown=breakdown,
    )


def scoring_inputs_for_product(product: Product, avg_cpc: float) -> ScoringInputs:
    """Build product-level scoring inputs; absent values count as zero."""
    return ScoringInputs(
        monthly_profit=product.profit_estimate,
        price=product.price,
        margin=product.margin,
        reviews=product.reviews,
        avg_cpc=avg_cpc,
        risk_classification=product.risk_classification,
        consistency_rating=product.consistency_rating,
        profit_per_unit=product.profit_per_unit,
        bsr=product.bsr,
        rating=product.rating,
        opportunity_score_seed=product.opportunity_score,
    )
