"""Server-sent rating events: framing and per-role scoping of the stream."""

from __future__ import annotations

import json
from typing import Any

import pytest
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from src.api.routes.ratings import stream_rating_events
from src.domain.models import User
from src.domain.reference_data import DEMO_ORG, EDUCATOR_ID, TEST_EMPLOYER_ID, TEST_LEARNER_ID
from src.domain.services.rating_events import InMemoryRatingEventBus
from src.domain.services.ratings import RatingService
from src.infrastructure.db.models import UserModel

pytestmark = pytest.mark.asyncio

EDUCATOR = User(user_id=EDUCATOR_ID, roles=["educator"], org_id=DEMO_ORG["id"])
LEARNER = User(user_id=TEST_LEARNER_ID, roles=["learner"], org_id=DEMO_ORG["id"])
EXPERT = User(user_id=TEST_EMPLOYER_ID, roles=["master"], org_id=DEMO_ORG["id"])
CLASSMATE_ID = "test-learner-classmate"


class ConnectedRequest:
    async def is_disconnected(self) -> bool:
        return False


@pytest.fixture()
async def classmate(db: AsyncSession) -> str:
    db.add(
        UserModel(
            id=CLASSMATE_ID,
            email="classmate@example.com",
            display_name="Classmate",
            roles=["learner"],
            org_id=DEMO_ORG["id"],
        )
    )
    await db.commit()
    return CLASSMATE_ID


async def _open_stream(
    bus: InMemoryRatingEventBus, user: User, **filters: str | None
) -> StreamingResponse:
    response = await stream_rating_events(
        request=ConnectedRequest(),  # type: ignore[arg-type]
        learner_id=filters.get("learner_id"),
        rater_id=filters.get("rater_id"),
        events=bus,
        user=user,
    )
    assert await _next_chunk(response) == ": connected\n\n"
    return response


async def _next_chunk(response: StreamingResponse) -> str:
    chunk = await response.body_iterator.__anext__()
    return chunk if isinstance(chunk, str) else bytes(chunk).decode()


def _parse_event(chunk: str) -> tuple[str, dict[str, Any]]:
    event_line, data_line = chunk.strip().split("\n")
    assert event_line.startswith("event: ")
    assert data_line.startswith("data: ")
    return event_line.removeprefix("event: "), json.loads(data_line.removeprefix("data: "))


async def test_learner_stream_is_forced_to_own_ratings(
    db: AsyncSession, event_bus: InMemoryRatingEventBus, classmate: str
) -> None:
    service = RatingService(db, event_bus)
    response = await _open_stream(event_bus, LEARNER, learner_id=classmate)

    await service.request_ratings(
        educator=EDUCATOR, learner_id=classmate, competency_id="comp-python", request_self=True
    )
    (own,) = await service.request_ratings(
        educator=EDUCATOR,
        learner_id=TEST_LEARNER_ID,
        competency_id="comp-python",
        request_self=True,
    )

    name, payload = _parse_event(await _next_chunk(response))
    assert name == "rating.created"
    assert payload["rating_id"] == own.id
    assert payload["learner_id"] == TEST_LEARNER_ID

    await response.body_iterator.aclose()  # type: ignore[attr-defined]
    assert event_bus.subscriber_count == 0


async def test_expert_stream_only_carries_ratings_assigned_to_them(
    db: AsyncSession, event_bus: InMemoryRatingEventBus
) -> None:
    service = RatingService(db, event_bus)
    response = await _open_stream(event_bus, EXPERT, rater_id=EDUCATOR_ID)

    (self_request,) = await service.request_ratings(
        educator=EDUCATOR,
        learner_id=TEST_LEARNER_ID,
        competency_id="comp-web-dev",
        request_self=True,
    )
    (expert_request,) = await service.request_ratings(
        educator=EDUCATOR,
        learner_id=TEST_LEARNER_ID,
        competency_id="comp-web-dev",
        master_rater_id=TEST_EMPLOYER_ID,
    )
    await service.submit_rating(rating_id=self_request.id, rater=LEARNER, score=2)
    await service.submit_rating(rating_id=expert_request.id, rater=EXPERT, score=3)

    created = _parse_event(await _next_chunk(response))
    completed = _parse_event(await _next_chunk(response))
    assert created[0] == "rating.created"
    assert created[1]["rating_id"] == expert_request.id
    assert completed[0] == "rating.completed"
    assert completed[1]["rating_id"] == expert_request.id
    assert completed[1]["status"] == "completed"

    await response.body_iterator.aclose()  # type: ignore[attr-defined]
    assert event_bus.subscriber_count == 0


async def test_educator_stream_keeps_requested_filter(
    db: AsyncSession, event_bus: InMemoryRatingEventBus, classmate: str
) -> None:
    service = RatingService(db, event_bus)
    response = await _open_stream(event_bus, EDUCATOR, learner_id=classmate)

    await service.request_ratings(
        educator=EDUCATOR,
        learner_id=TEST_LEARNER_ID,
        competency_id="comp-python",
        request_self=True,
    )
    (watched,) = await service.request_ratings(
        educator=EDUCATOR, learner_id=classmate, competency_id="comp-python", request_self=True
    )

    _, payload = _parse_event(await _next_chunk(response))
    assert payload["rating_id"] == watched.id

    await response.body_iterator.aclose()  # type: ignore[attr-defined]
