"""Statistical aggregation of survey responses.

Turns raw answer text into per-question statistics and partitions responses
by classification keys such as year level. Values that do not parse as
numbers are excluded from every average (never counted as zero).
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Sequence

from survegio.config import get_settings
from survegio.schemas.report import QuestionStats
from survegio.schemas.response import Answer, StudentResponse
from survegio.schemas.survey import QuestionGroup
from survegio.logging_config import get_logger

logger = get_logger(__name__)

YEAR_LEVELS = ("1st Year", "2nd Year", "3rd Year", "4th Year")
UNKNOWN_KEY = "Unknown"


@dataclass
class ResponsePartition:
    """Responses sharing one classification key.

    Attributes:
        responses: Responses in the partition, in input order
        average_rating: Mean of in-range numeric answers, 0 when none
    """
    responses: list[StudentResponse] = field(default_factory=list)
    average_rating: float = 0


def parse_rating(value: Any) -> Optional[float]:
    """Parse a raw answer into a finite number.

    Returns None for blanks, text, NaN and infinities.

    Example:
        >>> parse_rating(" 4 ")
        4.0
        >>> parse_rating("abc") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def average(values: Iterable[Any]) -> float:
    """Arithmetic mean, skipping values that are not numbers.

    Unparseable values are left out of both the sum and the count, and an
    empty input gives 0.

    Example:
        >>> average(["3", "abc", "5"])
        4.0
        >>> average([])
        0
    """
    numbers = [n for n in (parse_rating(v) for v in values) if n is not None]
    if not numbers:
        return 0
    return sum(numbers) / len(numbers)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero on the upper side."""
    return math.floor(value + 0.5)


def distribution(values: Iterable[float]) -> dict[str, int]:
    """Count values per rounded integer bucket.

    Example:
        >>> distribution([4.6, 4.4, 5])
        {'5': 2, '4': 1}
    """
    buckets: dict[str, int] = {}
    for value in values:
        key = str(round_half_up(value))
        buckets[key] = buckets.get(key, 0) + 1
    return buckets


class ResponseAggregator:
    """Aggregation over a survey's question groups.

    Holds only the survey's question structure and the rating range; the
    response collection is passed to every call so results always reflect
    the current responses.
    """

    def __init__(
        self,
        question_groups: Sequence[QuestionGroup],
        rating_min: Optional[float] = None,
        rating_max: Optional[float] = None
    ):
        """Initialize aggregator.

        Args:
            question_groups: Ordered question groups of the survey
            rating_min: Lower bound for range-filtered averages
                (defaults to settings.rating_scale_min)
            rating_max: Upper bound for range-filtered averages
                (defaults to settings.rating_scale_max)
        """
        settings = get_settings()
        self.question_groups = list(question_groups)
        self.rating_min = settings.rating_scale_min if rating_min is None else rating_min
        self.rating_max = settings.rating_scale_max if rating_max is None else rating_max

    @staticmethod
    def answers_for(question_id: int, responses: Iterable[StudentResponse]) -> list[Answer]:
        """All answers to ``question_id`` across the responses."""
        return [
            answer
            for response in responses
            for answer in response.answers
            if answer.question_id == question_id
        ]

    @staticmethod
    def rating_values(answers: Iterable[Answer]) -> list[float]:
        """Numeric values of the answers, unparseable ones dropped."""
        values = []
        for answer in answers:
            number = parse_rating(answer.answer_value)
            if number is None:
                logger.debug(f"Excluded non-numeric answer to question {answer.question_id}")
                continue
            values.append(number)
        return values

    def in_range_ratings(self, responses: Iterable[StudentResponse]) -> list[float]:
        """Every numeric answer within the rating range, across all questions."""
        ratings = []
        for response in responses:
            for answer in response.answers:
                number = parse_rating(answer.answer_value)
                if number is not None and self.rating_min <= number <= self.rating_max:
                    ratings.append(number)
        return ratings

    def find_group(self, question_id: int) -> Optional[QuestionGroup]:
        for group in self.question_groups:
            if question_id in group.question_ids():
                return group
        return None

    def stats_for(self, question_id: int, responses: Sequence[StudentResponse]) -> QuestionStats:
        """Statistics for one question over the given responses.

        Rating questions get an unclamped average and a distribution keyed
        by the rounded value; open-ended questions only get a count.

        Args:
            question_id: Question identifier
            responses: Responses to aggregate

        Returns:
            QuestionStats for the question
        """
        group = self.find_group(question_id)
        answers = self.answers_for(question_id, responses)

        question_text = ""
        response_style = ""
        if group is not None:
            response_style = group.response_style
            question_text = next(
                (q.question for q in group.questions if q.id == question_id), ""
            )

        if group is None or not group.is_rating:
            return QuestionStats(
                question_id=question_id,
                question_text=question_text,
                response_style=response_style,
                total_responses=len(answers),
            )

        values = self.rating_values(answers)
        return QuestionStats(
            question_id=question_id,
            question_text=question_text,
            response_style=response_style,
            total_responses=len(answers),
            average=average(values),
            distribution=distribution(values),
        )

    def question_stats(self, responses: Sequence[StudentResponse]) -> list[QuestionStats]:
        """Statistics for every saved question, in survey order."""
        return [
            self.stats_for(question.id, responses)
            for group in self.question_groups
            for question in group.questions
            if question.id is not None
        ]

    def group_by(
        self,
        responses: Iterable[StudentResponse],
        key_fn: Callable[[StudentResponse], Optional[str]],
        initial_keys: Iterable[str] = ()
    ) -> dict[str, ResponsePartition]:
        """Partition responses by a classification key.

        Each partition's average covers every numeric answer within the
        rating range; partitions without responses report 0.

        Args:
            responses: Responses to partition
            key_fn: Returns the key of a response; None maps to "Unknown"
            initial_keys: Keys that must appear even when empty

        Returns:
            Mapping of key -> ResponsePartition, initial keys first
        """
        groups: dict[str, ResponsePartition] = {
            key: ResponsePartition() for key in initial_keys
        }

        for response in responses:
            key = key_fn(response)
            key = UNKNOWN_KEY if key is None or key == "" else str(key)
            groups.setdefault(key, ResponsePartition()).responses.append(response)

        for partition in groups.values():
            if partition.responses:
                partition.average_rating = average(self.in_range_ratings(partition.responses))

        return groups

    def responses_by_year_level(
        self, responses: Iterable[StudentResponse]
    ) -> dict[str, ResponsePartition]:
        """Responses grouped by year level, every standard level present."""
        return self.group_by(responses, lambda r: r.year_level, initial_keys=YEAR_LEVELS)
