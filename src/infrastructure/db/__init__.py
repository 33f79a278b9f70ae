from . import models  # noqa: F401
from .base import Base
from .models import ArtifactModel, CompetencyModel, OrganizationModel, RatingModel, UserModel
from .session import dispose_engine, get_engine, get_session, get_session_factory, script_session

__all__ = [
    "ArtifactModel",
    "Base",
    "CompetencyModel",
    "OrganizationModel",
    "RatingModel",
    "UserModel",
    "dispose_engine",
    "get_engine",
    "get_session",
    "get_session_factory",
    "script_session",
]
