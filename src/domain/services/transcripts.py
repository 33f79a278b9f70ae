"""
Transcript analysis service.

Turns a learner's transcript into suggested mentor ratings via the chat
completion API. Suggestions are a draft: an educator reviews and edits them
in the onboarding flow before anything is stored.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import structlog
from src.domain.errors import DomainError, DomainValidationError
from src.domain.models import MAX_SCORE, MIN_SCORE, Competency
from src.libs.gpt_client import GPTClientError, GPTClientProtocol, OpenAIClient

logger = structlog.get_logger(__name__)

ANALYSIS_TEMPERATURE = 0.3
ANALYSIS_MAX_TOKENS = 2000

TRANSCRIPT_SYSTEM_PROMPT = """You are an experienced educator reviewing a student \
transcript for evidence of competencies.

For every listed competency with clear evidence in the transcript, suggest a \
score on the 0-4 scale and a short comment:
- 0: No evidence
- 1: Beginning (minimal evidence, early development)
- 2: Developing (some evidence, growing competency)
- 3: Proficient (strong evidence, solid competency)
- 4: Expert (exceptional evidence, mastery level)

Rules:
1. Only rate competencies with clear evidence; leave the others out.
2. Use the exact competency id given after "ID:" in the list. Never invent ids.
3. Do not name the student in comments; describe the evidence only.

Respond with JSON only:
{
  "suggestions": [
    {"competency_id": "<id from the list>", "score": <0-4>, "comment": "<evidence>"}
  ]
}
"""


class TranscriptAnalysisError(DomainError):
    """Raised when the language model cannot produce usable suggestions."""


@dataclass(frozen=True, slots=True)
class SuggestedRating:
    competency_id: str
    score: int
    comment: str


def build_user_prompt(transcript: str, competencies: Sequence[Competency]) -> str:
    catalog = "\n".join(
        f'- ID: "{c.id}" | Title: {c.title} | Description: {c.description}'
        for c in competencies
    )
    return (
        f"TRANSCRIPT:\n{transcript}\n\n"
        f"COMPETENCIES TO ASSESS:\n{catalog}\n\n"
        "Analyze the transcript and suggest ratings with supporting comments."
    )


def parse_suggestions(
    payload: Any, competencies: Sequence[Competency]
) -> tuple[list[SuggestedRating], int]:
    """Keep well-formed suggestions for known competencies.

    Returns the accepted suggestions and the number dropped.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("suggestions", []), list):
        raise TranscriptAnalysisError("Model reply has no suggestions list")

    known = {competency.id for competency in competencies}
    accepted: dict[str, SuggestedRating] = {}
    dropped = 0
    for item in payload.get("suggestions", []):
        if not isinstance(item, dict):
            dropped += 1
            continue
        competency_id = item.get("competency_id")
        score = item.get("score")
        if competency_id not in known or competency_id in accepted:
            dropped += 1
            continue
        if isinstance(score, bool) or not isinstance(score, int):
            dropped += 1
            continue
        if not MIN_SCORE <= score <= MAX_SCORE:
            dropped += 1
            continue
        comment = item.get("comment")
        accepted[competency_id] = SuggestedRating(
            competency_id=competency_id,
            score=score,
            comment=comment.strip() if isinstance(comment, str) else "",
        )
    return list(accepted.values()), dropped


class TranscriptAnalysisService:
    """Suggests ratings for catalog competencies from transcript text."""

    def __init__(self, gpt_client: GPTClientProtocol | None = None) -> None:
        self.gpt_client = gpt_client or OpenAIClient()

    async def analyze(
        self, transcript: str, competencies: Sequence[Competency]
    ) -> list[SuggestedRating]:
        if not transcript or not transcript.strip():
            raise DomainValidationError("Transcript is empty")
        if not competencies:
            return []

        messages = [
            {"role": "system", "content": TRANSCRIPT_SYSTEM_PROMPT},
            {"role": "user", "content": build_user_prompt(transcript.strip(), competencies)},
        ]
        try:
            response = await self.gpt_client.chat_completion(
                messages,
                temperature=ANALYSIS_TEMPERATURE,
                max_tokens=ANALYSIS_MAX_TOKENS,
                response_format="json_object",
            )
            payload = response.json()
        except GPTClientError as exc:
            logger.exception("transcript_analysis_failed", error=str(exc))
            raise TranscriptAnalysisError("Failed to analyze transcript") from exc

        suggestions, dropped = parse_suggestions(payload, competencies)
        logger.info(
            "transcript_analyzed",
            characters=len(transcript),
            competencies=len(competencies),
            suggestions=len(suggestions),
            dropped=dropped,
            model=response.model,
            latency_ms=response.latency_ms,
        )
        return suggestions
