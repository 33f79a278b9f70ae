"""
Competency portfolio core.

Pure transformations over ratings already loaded from storage: group and
average completed ratings per competency, drop hidden competencies, apply a
learner's custom display order, and match learners against talent search
thresholds. Nothing here performs I/O.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from src.domain.models import (
    Artifact,
    Competency,
    Completed,
    Rating,
    RaterType,
    UserRecord,
)


@dataclass(frozen=True, slots=True)
class CompetencyAggregate:
    """A competency with its completed ratings and their mean score."""

    competency: Competency
    ratings: tuple[Rating, ...]
    average: float

    @property
    def competency_id(self) -> str:
        return self.competency.id


@dataclass(frozen=True, slots=True)
class SearchCriterion:
    competency_id: str
    min_average: float


@dataclass(frozen=True, slots=True)
class CompetencyMatch:
    competency: Competency
    average: float


@dataclass(frozen=True, slots=True)
class LearnerMatch:
    learner: UserRecord
    matched_competencies: tuple[CompetencyMatch, ...]


@dataclass(frozen=True, slots=True)
class PortfolioEntry:
    """One visible competency on a learner's public portfolio."""

    aggregate: CompetencyAggregate
    rater_types: tuple[RaterType, ...]
    artifacts: tuple[Artifact, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class ProgressPoint:
    timestamp: datetime
    running_average: float


@dataclass(frozen=True, slots=True)
class ScorePoint:
    timestamp: datetime
    score: int


@dataclass(frozen=True, slots=True)
class RaterTrack:
    """Raw scores from one rater type, oldest first."""

    rater_type: RaterType
    points: tuple[ScorePoint, ...]


@dataclass(frozen=True, slots=True)
class ProgressSeries:
    competency: Competency
    points: tuple[ProgressPoint, ...]
    rater_tracks: tuple[RaterTrack, ...] = field(default_factory=tuple)


def aggregate_ratings(
    ratings: Iterable[Rating],
    competencies: Iterable[Competency],
) -> list[CompetencyAggregate]:
    """Group completed ratings by competency and compute each mean score.

    Pending ratings and ratings whose competency is not in ``competencies``
    are dropped. Competencies appear in the order their first qualifying
    rating was seen; a competency without any qualifying rating is absent.
    """
    by_id = {competency.id: competency for competency in competencies}
    grouped: dict[str, list[Rating]] = {}

    for rating in ratings:
        if not isinstance(rating.state, Completed):
            continue
        if rating.competency_id not in by_id:
            continue
        grouped.setdefault(rating.competency_id, []).append(rating)

    aggregates: list[CompetencyAggregate] = []
    for competency_id, group in grouped.items():
        total = sum(rating.state.score for rating in group)  # type: ignore[union-attr]
        aggregates.append(
            CompetencyAggregate(
                competency=by_id[competency_id],
                ratings=tuple(group),
                average=total / len(group),
            )
        )
    return aggregates


def filter_visible(
    aggregates: Iterable[CompetencyAggregate],
    hidden_ids: Iterable[str] | None,
) -> list[CompetencyAggregate]:
    """Remove competencies the learner has hidden from public view."""
    hidden = set(hidden_ids or ())
    return [aggregate for aggregate in aggregates if aggregate.competency_id not in hidden]


def sort_for_display(
    aggregates: Iterable[CompetencyAggregate],
    display_order: Sequence[str] | None,
) -> list[CompetencyAggregate]:
    """Apply a learner's custom competency order.

    Competencies named in ``display_order`` come first, in that order.
    The rest follow in their original relative order.
    """
    items = list(aggregates)
    if not display_order:
        return items

    positions: dict[str, int] = {}
    for index, competency_id in enumerate(display_order):
        positions.setdefault(competency_id, index)

    unordered = len(display_order)
    # sorted() is stable, so unordered items keep their relative order
    return sorted(items, key=lambda item: positions.get(item.competency_id, unordered))


def match_learners(
    learners: Iterable[UserRecord],
    ratings: Iterable[Rating],
    competencies: Iterable[Competency],
    criteria: Sequence[SearchCriterion],
) -> list[LearnerMatch]:
    """Return the learners meeting every search criterion.

    A criterion holds when the learner has an average for the competency,
    has not hidden it, and the average is at least the threshold.
    """
    if not criteria:
        return []

    catalog = list(competencies)
    ratings_by_learner: dict[str, list[Rating]] = {}
    for rating in ratings:
        ratings_by_learner.setdefault(rating.learner_id, []).append(rating)

    matches: list[LearnerMatch] = []
    for learner in learners:
        averages = {
            aggregate.competency_id: aggregate
            for aggregate in aggregate_ratings(ratings_by_learner.get(learner.id, ()), catalog)
        }
        hidden = set(learner.hidden_competency_ids)

        matched: list[CompetencyMatch] = []
        for criterion in criteria:
            aggregate = averages.get(criterion.competency_id)
            if aggregate is None or criterion.competency_id in hidden:
                break
            if aggregate.average < criterion.min_average:
                break
            matched.append(CompetencyMatch(aggregate.competency, aggregate.average))
        else:
            matches.append(LearnerMatch(learner=learner, matched_competencies=tuple(matched)))

    return matches


def build_portfolio(
    learner: UserRecord,
    ratings: Iterable[Rating],
    competencies: Iterable[Competency],
    artifacts: Iterable[Artifact] = (),
) -> list[PortfolioEntry]:
    """Aggregate, hide and order a learner's competencies for public display."""
    own_ratings = [rating for rating in ratings if rating.learner_id == learner.id]
    visible = filter_visible(
        aggregate_ratings(own_ratings, competencies), learner.hidden_competency_ids
    )
    ordered = sort_for_display(visible, learner.competency_display_order)

    evidence = [artifact for artifact in artifacts if artifact.learner_id == learner.id]
    entries: list[PortfolioEntry] = []
    for aggregate in ordered:
        rater_types = tuple(dict.fromkeys(rating.rater_type for rating in aggregate.ratings))
        linked = tuple(
            artifact for artifact in evidence if aggregate.competency_id in artifact.competency_ids
        )
        entries.append(
            PortfolioEntry(aggregate=aggregate, rater_types=rater_types, artifacts=linked)
        )
    return entries


def progress_series(
    ratings: Iterable[Rating],
    competencies: Iterable[Competency],
) -> list[ProgressSeries]:
    """Running average per competency, one point per completed rating by date.

    Each series also carries one track of raw scores per rater type, in the
    order the rater types first rated.
    """
    series: list[ProgressSeries] = []
    for aggregate in aggregate_ratings(ratings, competencies):
        running_total = 0
        points: list[ProgressPoint] = []
        tracks: dict[RaterType, list[ScorePoint]] = {}
        for count, rating in enumerate(sorted(aggregate.ratings, key=lambda r: r.created_at), 1):
            score = rating.score or 0
            running_total += score
            points.append(ProgressPoint(rating.created_at, running_total / count))
            tracks.setdefault(rating.rater_type, []).append(ScorePoint(rating.created_at, score))
        series.append(
            ProgressSeries(
                competency=aggregate.competency,
                points=tuple(points),
                rater_tracks=tuple(
                    RaterTrack(rater_type=rater_type, points=tuple(track))
                    for rater_type, track in tracks.items()
                ),
            )
        )
    return series
