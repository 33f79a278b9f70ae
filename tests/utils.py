from __future__ import annotations

import json
from typing import Any

from src.api.deps import issue_smoke_token
from src.core.auth import Role
from src.domain.reference_data import DEMO_ORG
from src.libs.gpt_client import GPTClientError, GPTResponse


def auth_headers(
    user_id: str = "test-learner-main",
    role: Role = Role.LEARNER,
    org_id: str | None = DEMO_ORG["id"],
) -> dict[str, str]:
    token = issue_smoke_token(user_id, role=role, email=f"{user_id}@example.com", org_id=org_id)
    return {"Authorization": f"Bearer {token}"}


def gpt_response(payload: Any) -> GPTResponse:
    """Wrap a JSON-serialisable payload as a chat completion reply."""
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return GPTResponse(
        content=content,
        model="gpt-4o-mini",
        prompt_tokens=100,
        completion_tokens=50,
        total_tokens=150,
        latency_ms=42,
        finish_reason="stop",
    )


class MockGPTClient:
    """Mock GPT client for testing."""

    def __init__(
        self,
        responses: list[GPTResponse] | None = None,
        should_fail: bool = False,
    ):
        self.responses = responses or []
        self.should_fail = should_fail
        self.calls: list[dict[str, Any]] = []

    async def chat_completion(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.0,
        max_tokens: int = 1000,
        response_format: str | None = None,
    ) -> GPTResponse:
        self.calls.append(
            {
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "response_format": response_format,
            }
        )
        if self.should_fail:
            raise GPTClientError("Mocked GPT failure")
        if len(self.calls) <= len(self.responses):
            return self.responses[len(self.calls) - 1]
        return gpt_response({"suggestions": []})
