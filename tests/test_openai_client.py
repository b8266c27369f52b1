from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import httpx
import openai
import pytest

from hireflow.collaborators.openai_client import OpenAIInferenceClient, classify_openai_error
from hireflow.contracts.domain import PipelineSnapshot, ScreeningRequest
from hireflow.contracts.models import CandidateRef, JobRef

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _response(status: int, headers: dict[str, str] | None = None) -> httpx.Response:
    return httpx.Response(status, headers=headers, request=REQUEST)


class FakeCompletions:
    def __init__(self, outcome: Any) -> None:
        self.outcome = outcome
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        message = SimpleNamespace(content=self.outcome)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(outcome: Any) -> tuple[OpenAIInferenceClient, FakeCompletions]:
    completions = FakeCompletions(outcome)
    fake = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAIInferenceClient(model="gpt-test", timeout=5, client=fake), completions  # type: ignore[arg-type]


def _screening() -> ScreeningRequest:
    return ScreeningRequest(
        candidate=CandidateRef(id="cand_ada", name="Ada", skills=["Python"]),
        job=JobRef(id="job_1", title="Backend", required_skills=["Python"]),
    )


@pytest.mark.parametrize(
    ("exc", "code", "retryable"),
    [
        (openai.APITimeoutError(request=REQUEST), "TIMEOUT", True),
        (openai.APIConnectionError(request=REQUEST), "NETWORK_ERROR", True),
        (openai.AuthenticationError("bad key", response=_response(401), body=None), "UNAUTHORIZED", False),
        (openai.InternalServerError("down", response=_response(503), body=None), "UPSTREAM_UNAVAILABLE", True),
        (openai.BadRequestError("nope", response=_response(400), body=None), "HTTP_400", False),
    ],
)
def test_error_classification(exc: openai.OpenAIError, code: str, retryable: bool) -> None:
    result = classify_openai_error(exc)

    assert result.failure is not None
    assert result.failure.code == code
    assert result.failure.retryable is retryable


def test_rate_limit_honours_retry_after() -> None:
    exc = openai.RateLimitError(
        "slow down", response=_response(429, {"retry-after": "7"}), body=None
    )

    result = classify_openai_error(exc)

    assert result.failure is not None
    assert result.failure.code == "RATE_LIMITED"
    assert result.failure.retry_after_seconds == 7.0


@pytest.mark.asyncio
async def test_screening_parses_json_reply() -> None:
    client, completions = _client('{"score": 91, "summary": "great fit", "strengths": ["Python"]}')

    result = await client.score_screening(_screening())

    assert result.ok
    assert result.value is not None and result.value.score == 91
    call = completions.calls[0]
    assert call["model"] == "gpt-test"
    assert call["response_format"] == {"type": "json_object"}
    assert call["timeout"] == 5


@pytest.mark.asyncio
async def test_malformed_reply_is_permanent_failure() -> None:
    client, _ = _client('{"score": "lots"}')

    result = await client.score_screening(_screening())

    assert result.failure is not None
    assert result.failure.code == "INVALID_RESPONSE"
    assert result.failure.retryable is False


@pytest.mark.asyncio
async def test_sdk_errors_become_failures() -> None:
    client, _ = _client(openai.APITimeoutError(request=REQUEST))

    result = await client.score_screening(_screening())

    assert result.failure is not None and result.failure.retryable


@pytest.mark.asyncio
async def test_insight_is_trimmed() -> None:
    client, _ = _client('{"insight": "  screening is piling up  "}')

    result = await client.pipeline_insight(
        PipelineSnapshot(open_jobs=1, total_candidates=4, stage_counts={"screening": 4})
    )

    assert result.value == "screening is piling up"
