from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from src.api.deps import get_db_session, get_gpt_client, require_roles
from src.api.schemas.transcripts import SuggestedRatingItem, TranscriptAnalysisResponse
from src.domain import User
from src.domain.errors import DomainValidationError
from src.domain.services.competencies import CompetencyService
from src.domain.services.transcripts import TranscriptAnalysisError, TranscriptAnalysisService
from src.libs.gpt_client import GPTClientProtocol

router = APIRouter(prefix="/transcripts", tags=["Transcripts"])
logger = structlog.get_logger()


@router.post("/analyze", response_model=TranscriptAnalysisResponse)
async def analyze_transcript(
    file: UploadFile = File(...),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),
    gpt_client: GPTClientProtocol = Depends(get_gpt_client),
    user: User = Depends(require_roles(["educator"])),
) -> TranscriptAnalysisResponse:
    """Suggest mentor ratings from a transcript for the educator to review."""
    transcript = (await file.read()).decode("utf-8", errors="replace")
    competencies = await CompetencyService(session).list_catalog()

    try:
        suggestions = await TranscriptAnalysisService(gpt_client).analyze(transcript, competencies)
    except DomainValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except TranscriptAnalysisError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to analyze transcript. Please try again.",
        ) from exc

    logger.info(
        "transcript_suggestions_served",
        educator_id=user.user_id,
        filename=file.filename,
        suggestions=len(suggestions),
    )
    return TranscriptAnalysisResponse(
        suggestions=[
            SuggestedRatingItem(
                competency_id=item.competency_id, score=item.score, comment=item.comment
            )
            for item in suggestions
        ]
    )
