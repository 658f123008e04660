from dataclasses import dataclass
import logging
import math
from typing import Iterable, List, Sequence, Tuple

from studytrack.core.catalog import SUBJECTS, Subject
from studytrack.core.entities import Grade


logger = logging.getLogger(__name__)


# (lower bound inclusive, letter), checked top-down
GRADE_BANDS: Tuple[Tuple[int, str], ...] = (
    (90, "A"),
    (80, "B+"),
    (70, "B"),
    (60, "C+"),
    (50, "C"),
)
FAILING_GRADE = "F"


class InvalidMarksError(ValueError):
    pass


@dataclass(frozen=True)
class SubjectAverage:
    subject: str
    color: str
    average: int
    count: int


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(marks_obtained: float, max_marks: float) -> int:
    if max_marks <= 0:
        raise InvalidMarksError("max_marks must be greater than 0")
    return _round_half_up(marks_obtained / max_marks * 100)


def letter_grade(percent: float) -> str:
    for lower, letter in GRADE_BANDS:
        if percent >= lower:
            return letter
    return FAILING_GRADE


def grade_for_marks(marks_obtained: float, max_marks: float) -> str:
    return letter_grade(percentage(marks_obtained, max_marks))


def weighted_average(grades: Iterable[Grade]) -> int:
    """
    Σ(percentage * weight) / Σ(weight), rounded.

    Weights need not add up to 100; the result is normalized by the weights present.
    Returns 0 for no grades or zero total weight. Grades with a non-positive
    max_marks cannot produce a percentage and are left out.
    """
    weighted_sum = 0.0
    total_weight = 0.0

    for grade in grades:
        if grade.max_marks <= 0:
            logger.warning("Skipping grade %s with max_marks=%s", grade.id or grade.assessment_name, grade.max_marks)
            continue
        weighted_sum += percentage(grade.marks_obtained, grade.max_marks) * grade.weight
        total_weight += grade.weight

    if total_weight == 0:
        return 0
    return _round_half_up(weighted_sum / total_weight)


def subject_average(grades: Iterable[Grade], subject: str) -> int:
    return weighted_average(grade for grade in grades if grade.subject == subject)


def subject_averages(grades: Sequence[Grade], subjects: Sequence[Subject] = SUBJECTS) -> List[SubjectAverage]:
    results: List[SubjectAverage] = []
    for subject in subjects:
        matching = [grade for grade in grades if grade.subject == subject.name]
        if not matching:
            continue
        results.append(
            SubjectAverage(
                subject=subject.name,
                color=subject.color,
                average=weighted_average(matching),
                count=len(matching),
            )
        )
    return results
