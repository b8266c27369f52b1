"""Bus topics and pipeline event types."""

from __future__ import annotations

# In-process bus topics.
BACKGROUND_JOBS_CHANGED = "background.jobs.changed"
BACKGROUND_JOB_RESULT = "background.job.result"
AGENT_PROPOSALS_CHANGED = "agent.proposals.changed"
CANDIDATE_STAGED = "candidate.staged"
AGENT_NOTIFICATION = "agent.notification"

BUS_TOPICS = (
    BACKGROUND_JOBS_CHANGED,
    BACKGROUND_JOB_RESULT,
    AGENT_PROPOSALS_CHANGED,
    CANDIDATE_STAGED,
    AGENT_NOTIFICATION,
)

# Pipeline event log entry types.
STAGE_MOVED = "STAGE_MOVED"
ACTION_PROPOSED = "ACTION_PROPOSED"
ACTION_DISMISSED = "ACTION_DISMISSED"
SKILLS_VERIFIED = "SKILLS_VERIFIED"
DRAFT_ACTIVATED = "DRAFT_ACTIVATED"
SCREENING_REQUESTED = "SCREENING_REQUESTED"
SCREENING_COMPLETED = "SCREENING_COMPLETED"
SCHEDULING_REQUESTED = "SCHEDULING_REQUESTED"
SCHEDULING_PROPOSED = "SCHEDULING_PROPOSED"
SCHEDULING_CONFIRMED = "SCHEDULING_CONFIRMED"
RESCHEDULE_REQUESTED = "RESCHEDULE_REQUESTED"
SCHEDULING_RESCHEDULED = "SCHEDULING_RESCHEDULED"
INTERVIEW_COMPLETED = "INTERVIEW_COMPLETED"
