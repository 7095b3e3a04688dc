"""Count-based quality grades for pipeline steps.

Each grader looks only at counts (keywords generated, search hits, pages
scraped, transcripts found) and returns a StepEvaluation: a good / partial
/ empty grade plus the metrics it was computed from. The grade is attached
to the step's orchestrator log entry so a reader can see at a glance which
step starved the report.

Example:
    >>> evaluation = grade_scrape(attempted=3, usable=2)
    >>> evaluation.quality, evaluation.metrics
    (<StepQuality.PARTIAL: 'partial'>, {'total': 3, 'successful': 2, 'success_rate': 67})
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Rate (percent) at or above which a step counts as good
GOOD_RATE = 80

# Unique video candidates at or above which search counts as good
GOOD_SEARCH_RESULTS = 10


class StepQuality(str, Enum):
    GOOD = "good"
    PARTIAL = "partial"
    EMPTY = "empty"


@dataclass
class StepEvaluation:
    """Grade for one step.

    Attributes:
        quality: Overall grade
        metrics: Counts the grade was computed from
        issue: Short explanation when the grade is not good
    """

    quality: StepQuality
    metrics: dict[str, Any] = field(default_factory=dict)
    issue: str | None = None


def _rate(part: int, total: int) -> int:
    return round(part / total * 100) if total else 0


def _grade_rate(rate: int) -> StepQuality:
    if rate >= GOOD_RATE:
        return StepQuality.GOOD
    if rate > 0:
        return StepQuality.PARTIAL
    return StepQuality.EMPTY


def grade_keywords(keywords: list[str], wanted: int) -> StepEvaluation:
    """Grade keyword generation against the number requested."""
    count = len(keywords)
    metrics = {"count": count, "wanted": wanted}
    if count >= wanted:
        return StepEvaluation(StepQuality.GOOD, metrics)
    if count > 0:
        return StepEvaluation(StepQuality.PARTIAL, metrics, f"Only {count} of {wanted} keywords generated")
    return StepEvaluation(StepQuality.EMPTY, metrics, "No keywords generated")


def grade_search(results: int, unique: int) -> StepEvaluation:
    """Grade the search step by unique candidates after dedup."""
    metrics = {"results": results, "unique": unique}
    if unique >= GOOD_SEARCH_RESULTS:
        return StepEvaluation(StepQuality.GOOD, metrics)
    if unique > 0:
        return StepEvaluation(StepQuality.PARTIAL, metrics, f"Only {unique} unique candidate(s) found")
    return StepEvaluation(StepQuality.EMPTY, metrics, "No search results found")


def grade_scrape(attempted: int, usable: int) -> StepEvaluation:
    """Grade source scraping by the share of pages long enough to use."""
    rate = _rate(usable, attempted)
    quality = _grade_rate(rate)
    issue = None if quality == StepQuality.GOOD else f"{100 - rate}% of scrapes failed or were too short"
    return StepEvaluation(quality, {"total": attempted, "successful": usable, "success_rate": rate}, issue)


def grade_transcripts(transcripts: list[str], placeholder: str) -> StepEvaluation:
    """Grade transcript aggregation by the share of real transcripts."""
    found = sum(1 for t in transcripts if t.strip() and t != placeholder)
    rate = _rate(found, len(transcripts))
    quality = _grade_rate(rate)
    issue = None if quality == StepQuality.GOOD else f"{len(transcripts) - found} video(s) have no transcript"
    return StepEvaluation(quality, {"total": len(transcripts), "transcribed": found, "success_rate": rate}, issue)
