from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime

MIN_SCORE = 0
MAX_SCORE = 4

DEFAULT_RUBRIC: dict[int, str] = {
    0: "No evidence",
    1: "Beginning",
    2: "Developing",
    3: "Proficient",
    4: "Expert",
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


class OrgType(str, enum.Enum):
    EDUCATION = "education"
    EMPLOYMENT = "employment"


class CompetencyType(str, enum.Enum):
    HARD = "hard"
    SOFT = "soft"


class RaterType(str, enum.Enum):
    SELF = "self"
    MENTOR = "mentor"
    MASTER = "master"


class RatingStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class ArtifactFileType(str, enum.Enum):
    PDF = "pdf"
    JPG = "jpg"
    PNG = "png"
    MP4 = "mp4"


@dataclass(slots=True)
class User:
    """Represents an authenticated actor within the system."""

    user_id: str
    email: str = ""
    roles: list[str] = field(default_factory=list)
    org_id: str | None = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True, slots=True)
class Pending:
    """Rating awaiting the rater's input."""

    @property
    def status(self) -> RatingStatus:
        return RatingStatus.PENDING


@dataclass(frozen=True, slots=True)
class Completed:
    """Rating submitted by the rater."""

    score: int
    comment: str | None = None

    def __post_init__(self) -> None:
        if (
            isinstance(self.score, bool)
            or not isinstance(self.score, int)
            or not MIN_SCORE <= self.score <= MAX_SCORE
        ):
            raise ValueError(f"score must be an integer between {MIN_SCORE} and {MAX_SCORE}")

    @property
    def status(self) -> RatingStatus:
        return RatingStatus.COMPLETED


RatingState = Pending | Completed


@dataclass(frozen=True, slots=True)
class Organization:
    id: str
    name: str
    org_type: OrgType
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True, slots=True)
class Competency:
    """A skill or trait rated on the 0-4 scale."""

    id: str
    title: str
    description: str
    type: CompetencyType
    org_id: str
    created_by: str = ""
    rubric: dict[int, str] | None = None
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def rubric_labels(self) -> dict[int, str]:
        return self.rubric or DEFAULT_RUBRIC


@dataclass(frozen=True, slots=True)
class Rating:
    """One rater's assessment of one learner's competency."""

    id: str
    learner_id: str
    competency_id: str
    rater_id: str
    rater_type: RaterType
    state: RatingState
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime | None = None

    @property
    def status(self) -> RatingStatus:
        return self.state.status

    @property
    def score(self) -> int | None:
        return self.state.score if isinstance(self.state, Completed) else None

    @property
    def comment(self) -> str | None:
        return self.state.comment if isinstance(self.state, Completed) else None


@dataclass(frozen=True, slots=True)
class UserRecord:
    """A stored user account (learner, educator or industry expert)."""

    id: str
    display_name: str
    email: str
    org_id: str
    roles: tuple[str, ...] = ()
    hidden_competency_ids: tuple[str, ...] = ()
    competency_display_order: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=_utcnow)

    def has_role(self, role: str) -> bool:
        return role in self.roles


@dataclass(frozen=True, slots=True)
class Artifact:
    """Uploaded evidence file linked to one or more competencies."""

    id: str
    learner_id: str
    uploaded_by: str
    file_url: str
    file_type: ArtifactFileType
    file_size: int
    file_name: str
    competency_ids: tuple[str, ...]
    storage_key: str = ""
    created_at: datetime = field(default_factory=_utcnow)
