from fastapi import FastAPI

from . import (
    artifacts,
    competencies,
    health,
    learners,
    profiles,
    ratings,
    search,
    transcripts,
)


def register_routes(app: FastAPI) -> None:
    """Attach all API routers to the FastAPI application."""
    app.include_router(health.router)
    app.include_router(competencies.router)
    app.include_router(learners.router)
    app.include_router(ratings.router)
    app.include_router(profiles.router)
    app.include_router(search.router)
    app.include_router(artifacts.router)
    app.include_router(transcripts.router)
