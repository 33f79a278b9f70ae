from __future__ import annotations


class DomainError(Exception):
    """Base class for errors raised by domain services."""


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""


class LearnerNotFoundError(NotFoundError):
    """Raised when a learner id has no matching learner account."""


class UserNotFoundError(NotFoundError):
    """Raised when a user id has no matching account with the expected role."""


class CompetencyNotFoundError(NotFoundError):
    """Raised when a competency id is not in the catalog."""


class RatingNotFoundError(NotFoundError):
    """Raised when a rating id does not exist."""


class ArtifactNotFoundError(NotFoundError):
    """Raised when an artifact id does not exist."""


class DomainValidationError(DomainError):
    """Raised when a request is well-formed but semantically invalid."""


class PermissionDeniedError(DomainError):
    """Raised when the acting user may not touch the target entity."""
