"""
Survey scoring engine

Turns a template structure plus a set of responses into scores on a common
0-10 scale, whatever each question's native scale is.

    normalized = (score - scale_min) / (scale_max - scale_min) * 10
    category   = mean(normalized) over answered questions only
    overall    = sum(category * weight) / sum(weight) over answered categories

Everything here is pure: no I/O, no rounding. Callers round for display
with round_score(). Dashboards call score_submission() over different
response slices (per property, per month, per property+month).
"""
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.core.exceptions import NotFoundError, ValidationError
from app.schemas.scoring import CategoryScore, SubcategoryScore, SubmissionScore


NORMALIZED_MAX = 10.0


def normalize_score(score: int, scale_min: int, scale_max: int) -> float:
    """Rescale a native score onto 0-10"""
    if scale_max <= scale_min:
        raise ValidationError(
            f"Invalid question scale [{scale_min}, {scale_max}]",
            field="scale_max",
            constraint="scale_min < scale_max",
        )
    return ((score - scale_min) / (scale_max - scale_min)) * NORMALIZED_MAX


def _question_index(categories: Sequence) -> Dict[int, Tuple[object, object, object]]:
    """question_id -> (category, subcategory, question)"""
    index = {}
    for category in categories:
        for subcategory in category.subcategories:
            for question in subcategory.questions:
                index[question.id] = (category, subcategory, question)
    return index


def _normalized_responses(categories: Sequence, responses: Iterable):
    index = _question_index(categories)
    for response in responses:
        entry = index.get(response.question_id)
        if entry is None:
            raise NotFoundError("Question", response.question_id)
        category, subcategory, question = entry
        yield category, subcategory, normalize_score(response.score, question.scale_min, question.scale_max)


def score_submission(categories: Sequence, responses: Iterable) -> SubmissionScore:
    """
    Score one submission (or any pooled slice of responses).

    Args:
        categories: ordered categories exposing id, weight and
            subcategories[].questions[] (id, scale_min, scale_max)
        responses: objects exposing question_id and score

    Returns:
        SubmissionScore with one CategoryScore per input category, in input
        order. A category with no answered question has average=None and is
        left out of the overall score. overall_score is 0.0 when nothing
        was answered.
    """
    totals: Dict[int, float] = {}
    counts: Dict[int, int] = {}

    for category, _, normalized in _normalized_responses(categories, responses):
        totals[category.id] = totals.get(category.id, 0.0) + normalized
        counts[category.id] = counts.get(category.id, 0) + 1

    category_scores: List[CategoryScore] = []
    weighted_sum = 0.0
    total_weight = 0.0

    for category in categories:
        answered = counts.get(category.id, 0)
        average: Optional[float] = None
        if answered > 0:
            average = totals[category.id] / answered
            weight = float(category.weight)
            weighted_sum += average * weight
            total_weight += weight
        category_scores.append(
            CategoryScore(category_id=category.id, average=average, answered_count=answered)
        )

    overall = weighted_sum / total_weight if total_weight > 0 else 0.0

    return SubmissionScore(overall_score=overall, category_scores=category_scores)


def subcategory_averages(categories: Sequence, responses: Iterable) -> List[SubcategoryScore]:
    """Unweighted mean of normalized scores per subcategory"""
    totals: Dict[int, float] = {}
    counts: Dict[int, int] = {}

    for _, subcategory, normalized in _normalized_responses(categories, responses):
        totals[subcategory.id] = totals.get(subcategory.id, 0.0) + normalized
        counts[subcategory.id] = counts.get(subcategory.id, 0) + 1

    results = []
    for category in categories:
        for subcategory in category.subcategories:
            answered = counts.get(subcategory.id, 0)
            results.append(
                SubcategoryScore(
                    subcategory_id=subcategory.id,
                    category_id=category.id,
                    average=totals[subcategory.id] / answered if answered else None,
                    answered_count=answered,
                )
            )
    return results


def round_score(value: Optional[float]) -> Optional[float]:
    """Display rounding: one decimal place, None stays None"""
    if value is None:
        return None
    return round(value, 1)
