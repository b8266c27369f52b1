"""OpenAI-backed inference client.

Upstream errors are classified into InferenceResult failures instead of being
raised, so the agents' retry helper can decide what to do with them.
"""

from __future__ import annotations

import json
import logging
from typing import Any, TypeVar
import uuid

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from hireflow.contracts.domain import (
    InterviewDebrief,
    InterviewSession,
    PipelineSnapshot,
    ScreeningRequest,
    ScreeningScore,
)
from hireflow.contracts.results import InferenceResult

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

SCREENING_SYSTEM = (
    "You are a recruiting screener. Score how well the candidate fits the job from 0 to 100. "
    'Reply with JSON: {"score": int, "summary": str, "strengths": [str], "concerns": [str]}.'
)
DEBRIEF_SYSTEM = (
    "You summarize job interviews. Only list skills the candidate clearly demonstrated. "
    'Reply with JSON: {"summary": str, "strengths": [str], "concerns": [str], '
    '"verified_skills": [str]}.'
)
INSIGHT_SYSTEM = (
    "You review hiring pipeline stage counts. Point out at most one notable issue, "
    'or return an empty string. Reply with JSON: {"insight": str}.'
)


class _Insight(BaseModel):
    insight: str = ""


def _retry_after(exc: openai.APIStatusError) -> float | None:
    raw = exc.response.headers.get("retry-after") if exc.response is not None else None
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def classify_openai_error(exc: openai.OpenAIError) -> InferenceResult[Any]:
    """Map an SDK exception onto a retryable or permanent failure."""
    if isinstance(exc, openai.APITimeoutError):
        return InferenceResult.fail("TIMEOUT", str(exc), retryable=True)
    if isinstance(exc, openai.APIConnectionError):
        return InferenceResult.fail("NETWORK_ERROR", str(exc), retryable=True)
    if isinstance(exc, openai.RateLimitError):
        return InferenceResult.fail(
            "RATE_LIMITED", str(exc), retryable=True, retry_after_seconds=_retry_after(exc)
        )
    if isinstance(exc, openai.AuthenticationError):
        return InferenceResult.fail("UNAUTHORIZED", str(exc))
    if isinstance(exc, openai.APIStatusError):
        if exc.status_code >= 500:
            return InferenceResult.fail(
                "UPSTREAM_UNAVAILABLE",
                str(exc),
                retryable=True,
                retry_after_seconds=_retry_after(exc),
            )
        return InferenceResult.fail(f"HTTP_{exc.status_code}", str(exc))
    return InferenceResult.fail("INFERENCE_ERROR", str(exc))


class OpenAIInferenceClient:
    """InferenceClient that asks a chat model for JSON answers."""

    def __init__(
        self,
        *,
        model: str,
        timeout: float = 60.0,
        api_key: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._model = model
        self._timeout = timeout
        self._client = client or AsyncOpenAI(api_key=api_key)

    async def score_screening(self, request: ScreeningRequest) -> InferenceResult[ScreeningScore]:
        prompt = {
            "job": {"title": request.job.title, "required_skills": request.job.required_skills},
            "candidate": {
                "name": request.candidate.name,
                "headline": request.candidate.headline,
                "skills": request.candidate.skills,
            },
        }
        return await self._complete_json(SCREENING_SYSTEM, prompt, ScreeningScore)

    async def summarize_interview(
        self, session: InterviewSession
    ) -> InferenceResult[InterviewDebrief]:
        prompt = {
            "job": session.job.title,
            "candidate_skills": session.candidate.skills,
            "transcript": [
                {"question": q, "answer": session.answers.get(q, "")} for q in session.questions
            ],
        }
        return await self._complete_json(DEBRIEF_SYSTEM, prompt, InterviewDebrief)

    async def pipeline_insight(self, snapshot: PipelineSnapshot) -> InferenceResult[str]:
        prompt = {
            "open_jobs": snapshot.open_jobs,
            "total_candidates": snapshot.total_candidates,
            "stage_counts": snapshot.stage_counts,
        }
        result = await self._complete_json(INSIGHT_SYSTEM, prompt, _Insight)
        if result.failure is not None or result.value is None:
            return InferenceResult(failure=result.failure)
        return InferenceResult.success(result.value.insight.strip())

    async def _complete_json(
        self, system: str, prompt: dict[str, Any], schema: type[M]
    ) -> InferenceResult[M]:
        req_id = str(uuid.uuid4())
        logger.info(
            "llm.request",
            extra={"extra": {"req_id": req_id, "model": self._model, "schema": schema.__name__}},
        )
        try:
            resp = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": json.dumps(prompt, default=str)},
                ],
                response_format={"type": "json_object"},
                timeout=self._timeout,
            )
        except openai.OpenAIError as exc:
            failed = classify_openai_error(exc)
            logger.warning(
                "llm.failed",
                extra={
                    "extra": {
                        "req_id": req_id,
                        "code": failed.failure.code if failed.failure else None,
                        "retryable": failed.failure.retryable if failed.failure else None,
                    }
                },
            )
            return InferenceResult(failure=failed.failure)

        content = resp.choices[0].message.content or ""
        try:
            parsed = schema.model_validate_json(content)
        except ValidationError as exc:
            logger.warning(
                "llm.invalid_response",
                extra={"extra": {"req_id": req_id, "content_len": len(content)}},
            )
            return InferenceResult.fail("INVALID_RESPONSE", str(exc))
        logger.info("llm.response", extra={"extra": {"req_id": req_id, "model": self._model}})
        return InferenceResult.success(parsed)
