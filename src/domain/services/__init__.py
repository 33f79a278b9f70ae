"""Domain services."""

from src.domain.services.artifacts import ArtifactService, ArtifactValidationError
from src.domain.services.competencies import CompetencyService
from src.domain.services.learners import (
    LearnerDashboard,
    LearnerOverview,
    LearnerService,
    OnboardingRating,
)
from src.domain.services.profiles import ProfileService, PublicProfile
from src.domain.services.rating_events import (
    InMemoryRatingEventBus,
    RatingEvent,
    RatingEventBus,
    RedisRatingEventBus,
    get_event_bus,
)
from src.domain.services.ratings import (
    RatingAlreadyCompletedError,
    RatingNotAssignedError,
    RatingService,
    RatingValidationError,
    RatingWithDetails,
)
from src.domain.services.transcripts import (
    SuggestedRating,
    TranscriptAnalysisError,
    TranscriptAnalysisService,
)

__all__ = [
    "ArtifactService",
    "ArtifactValidationError",
    "CompetencyService",
    "InMemoryRatingEventBus",
    "LearnerDashboard",
    "LearnerOverview",
    "LearnerService",
    "OnboardingRating",
    "ProfileService",
    "PublicProfile",
    "RatingAlreadyCompletedError",
    "RatingEvent",
    "RatingEventBus",
    "RatingNotAssignedError",
    "RatingService",
    "RatingValidationError",
    "RatingWithDetails",
    "RedisRatingEventBus",
    "SuggestedRating",
    "TranscriptAnalysisError",
    "TranscriptAnalysisService",
    "get_event_bus",
]
