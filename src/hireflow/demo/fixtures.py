"""Fixture data for demo scenarios."""

from __future__ import annotations

from hireflow.contracts.domain import InterviewSession, SchedulingRequest, ScreeningRequest
from hireflow.contracts.models import CandidateRef, JobRef


class ScenarioFixtures:
    """Container for fixture data for a scenario."""

    def __init__(
        self,
        jobs: list[JobRef],
        talent_pool: list[CandidateRef],
        screening: list[ScreeningRequest],
        scheduling: list[SchedulingRequest],
        interviews: list[InterviewSession],
    ) -> None:
        self.jobs = jobs
        self.talent_pool = talent_pool
        self.screening = screening
        self.scheduling = scheduling
        self.interviews = interviews


def _candidate(candidate_id: str, name: str, *skills: str) -> CandidateRef:
    return CandidateRef(
        id=candidate_id,
        name=name,
        email=f"{name.split()[0].lower()}@example.com",
        skills=list(skills),
    )


BACKEND_JOB = JobRef(
    id="job_backend",
    title="Senior Backend Engineer",
    required_skills=["Python", "FastAPI", "PostgreSQL", "AWS"],
)
DATA_JOB = JobRef(
    id="job_data",
    title="Data Engineer",
    required_skills=["Python", "SQL", "Spark"],
)
CLOSED_JOB = JobRef(
    id="job_closed",
    title="Frontend Engineer",
    status="closed",
    required_skills=["TypeScript", "React"],
)

ADA = _candidate("cand_ada", "Ada Lovelace", "Python", "FastAPI", "PostgreSQL", "AWS")
GRACE = _candidate("cand_grace", "Grace Hopper", "Python", "PostgreSQL", "Docker")
LINUS = _candidate("cand_linus", "Linus Pauling", "Python", "FastAPI", "PostgreSQL")
MARGARET = _candidate("cand_margaret", "Margaret Hamilton", "Python", "SQL", "Spark")
ALAN = _candidate("cand_alan", "Alan Kay", "SQL", "TypeScript", "React")
BARBARA = _candidate("cand_barbara", "Barbara Liskov")


def hiring_week() -> ScenarioFixtures:
    """Two open jobs, a small talent pool, and one of each kind of agent work."""
    return ScenarioFixtures(
        jobs=[BACKEND_JOB, DATA_JOB, CLOSED_JOB],
        talent_pool=[ADA, GRACE, LINUS, MARGARET, ALAN],
        screening=[
            ScreeningRequest(candidate=ADA, job=BACKEND_JOB),
            ScreeningRequest(candidate=GRACE, job=BACKEND_JOB),
            ScreeningRequest(candidate=BARBARA, job=BACKEND_JOB),
        ],
        scheduling=[SchedulingRequest(candidate=ADA, job=BACKEND_JOB)],
        interviews=[
            InterviewSession(
                id="session_ada_backend",
                candidate=ADA,
                job=BACKEND_JOB,
                questions=[
                    "Walk us through a service you built.",
                    "How do you tune slow queries?",
                    "How do you deploy it?",
                ],
                answers={
                    "Walk us through a service you built.": "A Python FastAPI billing service.",
                    "How do you tune slow queries?": "EXPLAIN plans and indexes in PostgreSQL.",
                    "How do you deploy it?": "Containers on AWS behind a load balancer.",
                },
            )
        ],
    )
