"""Shared enums for HireFlow contracts."""

from __future__ import annotations

from enum import Enum


class JobStatus(str, Enum):
    """Lifecycle of a scheduled background job."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobCategory(str, Enum):
    """Display category of a background job."""

    SOURCING = "SOURCING"
    SCREENING = "SCREENING"
    SCHEDULING = "SCHEDULING"
    INTERVIEW = "INTERVIEW"
    MONITORING = "MONITORING"


class MarkStatus(str, Enum):
    STARTED = "started"
    COMPLETED = "completed"


class ProposalStatus(str, Enum):
    PROPOSED = "proposed"
    APPLIED = "applied"
    DISMISSED = "dismissed"


class AgentType(str, Enum):
    """Producers of proposals and pipeline events."""

    SOURCING = "SOURCING"
    SCREENING = "SCREENING"
    SCHEDULING = "SCHEDULING"
    INTERVIEW = "INTERVIEW"
    ANALYTICS = "ANALYTICS"
    USER = "USER"


class AgentMode(str, Enum):
    """Whether an agent writes directly or only proposes."""

    RECOMMEND = "recommend"
    AUTO_WRITE = "auto_write"


class ActorType(str, Enum):
    AGENT = "agent"
    USER = "user"
    SYSTEM = "system"


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class PipelineStage(str, Enum):
    """Stages a candidate moves through for a job."""

    SOURCED = "sourced"
    NEW = "new"
    LONG_LIST = "long_list"
    SCREENING = "screening"
    SCHEDULING = "scheduling"
    INTERVIEW = "interview"
    OFFER = "offer"
    HIRED = "hired"
    REJECTED = "rejected"


class PayloadType(str, Enum):
    """Kinds of mutation a proposed action carries."""

    MOVE_CANDIDATE_TO_STAGE = "MOVE_CANDIDATE_TO_STAGE"
    UPDATE_VERIFIED_SKILLS = "UPDATE_VERIFIED_SKILLS"
    ACTIVATE_RESUME_DRAFT = "ACTIVATE_RESUME_DRAFT"


class Recommendation(str, Enum):
    """Score band assigned by screening and interview debriefs."""

    STRONG_PASS = "STRONG_PASS"
    PASS = "PASS"
    BORDERLINE = "BORDERLINE"
    FAIL = "FAIL"


class MeetingProvider(str, Enum):
    """Video provider used for interview meeting links."""

    GOOGLE_MEET = "google_meet"
    MS_TEAMS = "ms_teams"


class InterviewStatus(str, Enum):
    CONFIRMED = "confirmed"
    RESCHEDULED = "rescheduled"
