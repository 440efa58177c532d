from __future__ import annotations

from videogen.domain.enums import TERMINAL_STATUSES, JobStatus


def resolve_transition(current: JobStatus, observed: JobStatus) -> JobStatus:
    """
    Status a job should hold after observing `observed` while in `current`.

    Status only moves forward: terminal states are sticky and a RUNNING job
    does not fall back to PENDING when the provider reports THROTTLED again.
    A provider may finish between two observations, so PENDING can go
    straight to any terminal state.
    """
    if current in TERMINAL_STATUSES:
        return current
    if current == JobStatus.running and observed == JobStatus.pending:
        return JobStatus.running
    return observed
