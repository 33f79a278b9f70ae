from src.domain.models import (
    Artifact,
    Competency,
    Completed,
    Organization,
    Pending,
    Rating,
    RatingState,
    User,
    UserRecord,
)

__all__ = [
    "Artifact",
    "Competency",
    "Completed",
    "Organization",
    "Pending",
    "Rating",
    "RatingState",
    "User",
    "UserRecord",
]
