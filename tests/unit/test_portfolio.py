"""Unit tests for the pure portfolio core: aggregation, visibility, ordering and search."""

from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta
from itertools import count

import pytest
from src.domain.models import (
    Artifact,
    ArtifactFileType,
    Competency,
    CompetencyType,
    Completed,
    Pending,
    Rating,
    RaterType,
    UserRecord,
)
from src.domain.portfolio import (
    SearchCriterion,
    aggregate_ratings,
    build_portfolio,
    filter_visible,
    match_learners,
    progress_series,
    sort_for_display,
)

BASE_TIME = datetime(2026, 1, 1, tzinfo=UTC)
_ids = count(1)


def competency(competency_id: str) -> Competency:
    return Competency(
        id=competency_id,
        title=competency_id.title(),
        description=f"{competency_id} description",
        type=CompetencyType.HARD,
        org_id="org-1",
    )


def rating(
    competency_id: str,
    score: int | None,
    *,
    learner_id: str = "learner-1",
    rater_type: RaterType = RaterType.MENTOR,
    days: int = 0,
) -> Rating:
    return Rating(
        id=f"rating-{next(_ids)}",
        learner_id=learner_id,
        competency_id=competency_id,
        rater_id=f"rater-{rater_type.value}",
        rater_type=rater_type,
        state=Pending() if score is None else Completed(score=score),
        created_at=BASE_TIME + timedelta(days=days),
    )


def learner(
    learner_id: str,
    *,
    hidden: tuple[str, ...] = (),
    order: tuple[str, ...] = (),
) -> UserRecord:
    return UserRecord(
        id=learner_id,
        display_name=learner_id,
        email=f"{learner_id}@example.com",
        org_id="org-1",
        roles=("learner",),
        hidden_competency_ids=hidden,
        competency_display_order=order,
    )


CATALOG = [competency(cid) for cid in ("a", "b", "c", "d")]


def random_ratings(rng: random.Random, size: int) -> list[Rating]:
    ids = ["a", "b", "c", "d", "orphan"]
    return [
        rating(
            rng.choice(ids),
            rng.choice([None, 0, 1, 2, 3, 4]),
            learner_id=rng.choice(["learner-1", "learner-2", "learner-3"]),
        )
        for _ in range(size)
    ]


class TestAggregateRatings:
    def test_pending_rating_is_ignored(self) -> None:
        aggregates = aggregate_ratings([rating("a", 3), rating("a", None)], CATALOG)

        assert len(aggregates) == 1
        assert aggregates[0].competency_id == "a"
        assert aggregates[0].average == 3.0
        assert len(aggregates[0].ratings) == 1

    def test_zero_scores_count_towards_the_average(self) -> None:
        aggregates = aggregate_ratings([rating("a", 0), rating("a", 4)], CATALOG)

        assert aggregates[0].average == 2.0

    def test_orphan_ratings_are_dropped(self) -> None:
        aggregates = aggregate_ratings([rating("unknown", 4), rating("b", 2)], CATALOG)

        assert [aggregate.competency_id for aggregate in aggregates] == ["b"]

    def test_keeps_first_seen_order(self) -> None:
        ratings = [rating("c", 1), rating("a", 2), rating("c", 3), rating("b", 4)]

        aggregates = aggregate_ratings(ratings, CATALOG)

        assert [aggregate.competency_id for aggregate in aggregates] == ["c", "a", "b"]

    def test_empty_inputs(self) -> None:
        assert aggregate_ratings([], CATALOG) == []
        assert aggregate_ratings([rating("a", 3)], []) == []

    @pytest.mark.parametrize("seed", range(20))
    def test_invariants_hold_for_random_inputs(self, seed: int) -> None:
        rng = random.Random(seed)
        ratings = random_ratings(rng, rng.randint(0, 40))

        first = aggregate_ratings(ratings, CATALOG)
        second = aggregate_ratings(ratings, CATALOG)

        assert first == second
        for aggregate in first:
            assert aggregate.ratings
            scores = [r.score for r in aggregate.ratings]
            assert all(score is not None for score in scores)
            assert aggregate.average * len(scores) == pytest.approx(sum(scores))


class TestFilterVisible:
    def test_hidden_competency_is_removed(self) -> None:
        aggregates = aggregate_ratings([rating("a", 3), rating("b", 2)], CATALOG)

        visible = filter_visible(aggregates, ["a"])

        assert [aggregate.competency_id for aggregate in visible] == ["b"]

    def test_no_hidden_list_keeps_everything(self) -> None:
        aggregates = aggregate_ratings([rating("a", 3), rating("b", 2)], CATALOG)

        assert filter_visible(aggregates, None) == aggregates
        assert filter_visible(aggregates, []) == aggregates

    @pytest.mark.parametrize("seed", range(10))
    def test_removes_exactly_the_hidden_competencies(self, seed: int) -> None:
        rng = random.Random(seed)
        aggregates = aggregate_ratings(random_ratings(rng, 30), CATALOG)
        hidden = rng.sample(["a", "b", "c", "d", "zzz"], k=rng.randint(0, 5))

        visible = filter_visible(aggregates, hidden)

        present = {aggregate.competency_id for aggregate in aggregates}
        assert all(aggregate in aggregates for aggregate in visible)
        assert len(aggregates) - len(visible) == len(present & set(hidden))


class TestSortForDisplay:
    def test_ordered_first_then_rest(self) -> None:
        aggregates = aggregate_ratings([rating("a", 1), rating("b", 2), rating("c", 3)], CATALOG)

        ordered = sort_for_display(aggregates, ["b", "a"])

        assert [aggregate.competency_id for aggregate in ordered] == ["b", "a", "c"]

    def test_unknown_ids_in_order_are_ignored(self) -> None:
        aggregates = aggregate_ratings([rating("a", 1), rating("b", 2)], CATALOG)

        ordered = sort_for_display(aggregates, ["zzz", "b"])

        assert [aggregate.competency_id for aggregate in ordered] == ["b", "a"]

    def test_empty_order_is_identity(self) -> None:
        aggregates = aggregate_ratings([rating("c", 1), rating("a", 2)], CATALOG)

        assert sort_for_display(aggregates, []) == aggregates
        assert sort_for_display(aggregates, None) == aggregates

    @pytest.mark.parametrize("seed", range(10))
    def test_preserves_items_and_respects_order_list(self, seed: int) -> None:
        rng = random.Random(seed)
        aggregates = aggregate_ratings(random_ratings(rng, 30), CATALOG)
        order = rng.sample(["a", "b", "c", "d"], k=rng.randint(0, 4))

        ordered = sort_for_display(aggregates, order)

        assert sorted(a.competency_id for a in ordered) == sorted(
            a.competency_id for a in aggregates
        )
        ranked = [a.competency_id for a in ordered if a.competency_id in order]
        assert ranked == [cid for cid in order if cid in ranked]


class TestMatchLearners:
    def test_threshold_is_inclusive(self) -> None:
        learners = [learner("x"), learner("y")]
        ratings = [
            rating("a", 2, learner_id="x"),
            rating("a", 3, learner_id="x"),
            rating("a", 3, learner_id="y"),
        ]

        matches = match_learners(learners, ratings, CATALOG, [SearchCriterion("a", 3.0)])

        assert [match.learner.id for match in matches] == ["y"]
        assert matches[0].matched_competencies[0].average == 3.0

    def test_hidden_competency_blocks_match(self) -> None:
        learners = [learner("x", hidden=("a",))]
        ratings = [rating("a", 4, learner_id="x")]

        assert match_learners(learners, ratings, CATALOG, [SearchCriterion("a", 1.0)]) == []

    def test_all_criteria_must_hold(self) -> None:
        learners = [learner("x"), learner("y")]
        ratings = [
            rating("a", 4, learner_id="x"),
            rating("b", 1, learner_id="x"),
            rating("a", 4, learner_id="y"),
            rating("b", 3, learner_id="y"),
        ]
        criteria = [SearchCriterion("a", 3.0), SearchCriterion("b", 2.0)]

        matches = match_learners(learners, ratings, CATALOG, criteria)

        assert [match.learner.id for match in matches] == ["y"]
        assert [m.competency.id for m in matches[0].matched_competencies] == ["a", "b"]

    def test_missing_competency_excludes_learner(self) -> None:
        learners = [learner("x")]
        ratings = [rating("a", 4, learner_id="x")]

        assert match_learners(learners, ratings, CATALOG, [SearchCriterion("b", 0.0)]) == []

    def test_zero_average_meets_zero_threshold(self) -> None:
        learners = [learner("x")]
        ratings = [rating("a", 0, learner_id="x")]

        matches = match_learners(learners, ratings, CATALOG, [SearchCriterion("a", 0.0)])

        assert [match.learner.id for match in matches] == ["x"]

    def test_empty_criteria_match_nobody(self) -> None:
        learners = [learner("x")]
        assert match_learners(learners, [rating("a", 4, learner_id="x")], CATALOG, []) == []

    def test_pending_ratings_do_not_count(self) -> None:
        learners = [learner("x")]
        ratings = [rating("a", None, learner_id="x")]

        assert match_learners(learners, ratings, CATALOG, [SearchCriterion("a", 0.0)]) == []

    @pytest.mark.parametrize("seed", range(10))
    def test_raising_threshold_never_grows_matches(self, seed: int) -> None:
        rng = random.Random(seed)
        learners = [learner("learner-1"), learner("learner-2", hidden=("b",)), learner("learner-3")]
        ratings = random_ratings(rng, 60)
        target = rng.choice(["a", "b", "c"])

        previous: set[str] | None = None
        for step in range(9):
            threshold = step * 0.5
            matches = match_learners(
                learners, ratings, CATALOG, [SearchCriterion(target, threshold)]
            )
            current = {match.learner.id for match in matches}
            if previous is not None:
                assert current <= previous
            previous = current


class TestBuildPortfolio:
    def test_hides_orders_and_links_evidence(self) -> None:
        owner = learner("learner-1", hidden=("c",), order=("b",))
        ratings = [
            rating("a", 2, rater_type=RaterType.SELF),
            rating("a", 4, rater_type=RaterType.MASTER),
            rating("b", 3),
            rating("c", 4),
            rating("a", 1, learner_id="someone-else"),
        ]
        evidence = Artifact(
            id="artifact-1",
            learner_id="learner-1",
            uploaded_by="learner-1",
            file_url="http://test/files/a.pdf",
            file_type=ArtifactFileType.PDF,
            file_size=10,
            file_name="a",
            competency_ids=("a",),
        )

        entries = build_portfolio(owner, ratings, CATALOG, [evidence])

        assert [entry.aggregate.competency_id for entry in entries] == ["b", "a"]
        entry_a = entries[1]
        assert entry_a.aggregate.average == 3.0
        assert entry_a.rater_types == (RaterType.SELF, RaterType.MASTER)
        assert entry_a.artifacts == (evidence,)
        assert entries[0].artifacts == ()


class TestProgressSeries:
    def test_running_average_follows_creation_time(self) -> None:
        ratings = [rating("a", 4, days=10), rating("a", 2, days=0), rating("a", 3, days=5)]

        series = progress_series(ratings, CATALOG)

        assert len(series) == 1
        points = series[0].points
        assert [point.running_average for point in points] == [2.0, 2.5, 3.0]
        assert points[0].timestamp < points[1].timestamp < points[2].timestamp

    def test_rater_tracks_split_raw_scores_by_rater_type(self) -> None:
        ratings = [
            rating("a", 2, rater_type=RaterType.SELF, days=0),
            rating("a", 4, rater_type=RaterType.MENTOR, days=3),
            rating("a", 3, rater_type=RaterType.SELF, days=6),
            rating("a", None, rater_type=RaterType.MASTER, days=7),
        ]

        tracks = progress_series(ratings, CATALOG)[0].rater_tracks

        assert [track.rater_type for track in tracks] == [RaterType.SELF, RaterType.MENTOR]
        assert [point.score for point in tracks[0].points] == [2, 3]
        assert [point.score for point in tracks[1].points] == [4]
