"""
Score calculation: pure functions, no DB access, no side effects.

Calculation model:
- Each reviewer contributes one value: the mean of their ratings.
- Colleague score = weighted mean of reviewer averages, weighted by
  reviewer type (equal 1.0 weights by default).
- SELF ratings are excluded from the colleague score unless configured
  otherwise; they are reported separately as self_score.
- Final label = the threshold band the colleague score falls in. The
  default bands (1.0 / 1.5 / 2.5 / 3.5) equal "round half up, clamp to 1-4".
- Competency score = mean of all colleague ratings for that competency.
- Category score = mean of reviewer averages per reviewer type.

Example:
    Manager: 3 | Peer1: 4 | Peer2: 3 | Subordinate: 4
    Colleague = (3 + 4 + 3 + 4) / 4 = 3.5 -> "Outstanding Impact"
"""
from collections import OrderedDict, defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from feedback360.core.config import settings
from feedback360.core.exceptions import ConfigurationError
from feedback360.models.survey import ReviewerType
from feedback360.schemas.score import (
    RatingLabel, RatingResponse, ScoreBreakdownEntry, ScoreCard
)

# Lowest band first; index + 1 is the band number.
LABEL_ORDER: List[RatingLabel] = [
    RatingLabel.NEEDS_IMPROVEMENT,
    RatingLabel.MODERATE,
    RatingLabel.GOOD,
    RatingLabel.OUTSTANDING,
]

MIN_RATING = 1
MAX_RATING = 4


def _mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


class LabelClassifier:
    """Maps a numeric score to a RatingLabel using ascending lower bounds."""

    def __init__(self, thresholds: Optional[Sequence[float]] = None):
        bounds = list(thresholds if thresholds is not None else settings.scoring.label_thresholds)
        if len(bounds) != len(LABEL_ORDER):
            raise ConfigurationError(
                f"Expected {len(LABEL_ORDER)} label thresholds, got {len(bounds)}"
            )
        if any(lower >= upper for lower, upper in zip(bounds, bounds[1:])):
            raise ConfigurationError("Label thresholds must be strictly ascending")
        self.thresholds = bounds

    def band(self, score: float) -> int:
        """Return the 1-based band index. Scores below the first bound clamp to band 1."""
        band = 1
        for index, lower in enumerate(self.thresholds):
            if score >= lower:
                band = index + 1
        return band

    def classify(self, score: float) -> RatingLabel:
        return LABEL_ORDER[self.band(score) - 1]


def classify(score: float, thresholds: Optional[Sequence[float]] = None) -> RatingLabel:
    return LabelClassifier(thresholds).classify(score)


def score_to_band(score: float, thresholds: Optional[Sequence[float]] = None) -> int:
    return LabelClassifier(thresholds).band(score)


def reviewer_average(ratings: Optional[Iterable[int]]) -> Optional[float]:
    """Simple average of one reviewer's ratings; None if they rated nothing."""
    return _mean(list(ratings or []))


def self_score(ratings: Optional[Iterable[int]]) -> Optional[float]:
    avg = _mean(list(ratings or []))
    return round(avg, 2) if avg is not None else None


class ScoreAggregator:
    """
    Reduces the RatingResponses of one (employee, cycle) into a ScoreCard.

    Args:
        weights: reviewer_type -> weight. Types missing from the table weigh 1.0;
                 a weight of 0 removes that type from the colleague score.
        include_self: whether SELF ratings count towards the colleague score.
        classifier: label classifier, built from settings when omitted.
        precision: decimals kept on the colleague score. The label is derived
                   from the rounded value so the two can never disagree.
    """

    def __init__(
        self,
        weights: Optional[Dict[str, float]] = None,
        include_self: Optional[bool] = None,
        classifier: Optional[LabelClassifier] = None,
        precision: Optional[int] = None,
    ):
        raw_weights = weights if weights is not None else settings.scoring.reviewer_weights
        self.weights = {str(getattr(k, "value", k)).upper(): float(v) for k, v in raw_weights.items()}
        if any(w < 0 for w in self.weights.values()):
            raise ConfigurationError("Reviewer weights must be >= 0")
        self.include_self = settings.scoring.include_self if include_self is None else include_self
        self.classifier = classifier or LabelClassifier()
        self.precision = settings.scoring.precision if precision is None else precision

    # -- helpers ---------------------------------------------------------

    def weight_for(self, reviewer_type: ReviewerType) -> float:
        if reviewer_type == ReviewerType.SELF and not self.include_self:
            return 0.0
        return self.weights.get(reviewer_type.value, 1.0)

    @staticmethod
    def deduplicate(responses: Iterable[RatingResponse]) -> List[RatingResponse]:
        """Keep the first rating per (reviewer, rated item); later copies are dropped."""
        seen = set()
        unique = []
        for response in responses:
            key = (response.reviewer_id, response.item_key)
            if key in seen:
                continue
            seen.add(key)
            unique.append(response)
        return unique

    @staticmethod
    def group_by_reviewer(responses: Iterable[RatingResponse]) -> "OrderedDict[int, Tuple[ReviewerType, List[int]]]":
        grouped: "OrderedDict[int, Tuple[ReviewerType, List[int]]]" = OrderedDict()
        for response in responses:
            if response.reviewer_id not in grouped:
                grouped[response.reviewer_id] = (response.reviewer_type, [])
            grouped[response.reviewer_id][1].append(response.rating)
        return grouped

    def _colleague_responses(self, responses: Iterable[RatingResponse]) -> List[RatingResponse]:
        return [r for r in responses if self.weight_for(r.reviewer_type) > 0]

    # -- scores ----------------------------------------------------------

    def colleague_score(self, responses: Iterable[RatingResponse]) -> Optional[Tuple[float, int]]:
        """
        Weighted mean of reviewer averages.

        Returns:
            (score, contributing reviewer count), or None when no reviewer contributes.
        """
        grouped = self.group_by_reviewer(self.deduplicate(responses))
        total = 0.0
        total_weight = 0.0
        contributors = 0
        for reviewer_type, ratings in grouped.values():
            weight = self.weight_for(reviewer_type)
            avg = reviewer_average(ratings)
            if weight <= 0 or avg is None:
                continue
            total += weight * avg
            total_weight += weight
            contributors += 1

        if contributors == 0:
            return None
        # Weighted mean of values in [1, 4] stays in [1, 4]; clamp guards float drift
        score = min(MAX_RATING, max(MIN_RATING, total / total_weight))
        return score, contributors

    def aggregate(self, responses: Iterable[RatingResponse]) -> Optional[float]:
        result = self.colleague_score(responses)
        return result[0] if result else None

    def competency_scores(
        self,
        responses: Iterable[RatingResponse],
        question_competency_map: Optional[Dict[int, int]] = None,
    ) -> Dict[str, ScoreBreakdownEntry]:
        """Per-competency mean of all colleague ratings, keyed by competency id."""
        question_competency_map = question_competency_map or {}
        buckets: Dict[int, List[int]] = defaultdict(list)
        for response in self._colleague_responses(self.deduplicate(responses)):
            competency_id = response.competency_id
            if competency_id is None:
                competency_id = question_competency_map.get(response.question_id)
            if competency_id is None:
                continue
            buckets[competency_id].append(response.rating)

        result = {}
        for competency_id, ratings in buckets.items():
            avg = _mean(ratings)
            result[str(competency_id)] = ScoreBreakdownEntry(
                score=round(avg, 2),
                label=self.classifier.classify(avg),
                response_count=len(ratings),
            )
        return result

    def category_scores(self, responses: Iterable[RatingResponse]) -> Dict[str, ScoreBreakdownEntry]:
        """Per reviewer type: mean of that type's reviewer averages."""
        buckets: Dict[ReviewerType, List[float]] = defaultdict(list)
        for reviewer_type, ratings in self.group_by_reviewer(self.deduplicate(responses)).values():
            avg = reviewer_average(ratings)
            if avg is not None:
                buckets[reviewer_type].append(avg)

        result = {}
        for reviewer_type, averages in buckets.items():
            avg = _mean(averages)
            result[reviewer_type.value] = ScoreBreakdownEntry(
                score=round(avg, 2),
                label=self.classifier.classify(avg),
                reviewer_count=len(averages),
            )
        return result

    def calculate(
        self,
        employee_id: int,
        cycle_id: int,
        responses: Iterable[RatingResponse],
        question_competency_map: Optional[Dict[int, int]] = None,
        self_ratings: Optional[Iterable[int]] = None,
    ) -> Optional[ScoreCard]:
        """
        Full scorecard for one employee in one cycle.
        Returns None when nobody but the employee (or nobody at all) rated them.
        """
        responses = self.deduplicate(
            r for r in responses if r.employee_id == employee_id and r.cycle_id == cycle_id
        )
        result = self.colleague_score(responses)
        if result is None:
            return None

        score, total_reviewers = result
        score = round(score, self.precision)

        if self_ratings is None:
            self_ratings = [r.rating for r in responses if r.reviewer_type == ReviewerType.SELF]

        return ScoreCard(
            employee_id=employee_id,
            cycle_id=cycle_id,
            colleague_score=score,
            final_label=self.classifier.classify(score),
            total_reviewers=total_reviewers,
            self_score=self_score(self_ratings),
            competency_scores=self.competency_scores(responses, question_competency_map),
            reviewer_category_scores=self.category_scores(responses),
        )
