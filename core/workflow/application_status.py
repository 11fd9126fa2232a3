"""
Application status state machine.

    pending -> reviewing -> shortlisted -> interview-scheduled -> hired
       |           |             |                 |
       +-----------+-------------+-----------------+----------> rejected

``hired`` and ``rejected`` are terminal and nothing moves backwards.
``interview-scheduled`` is only reachable through ``schedule_interview``.

With ``strict=False`` ``update_status`` accepts any known status, which is
how the job board behaved before transitions were enforced server-side.
"""

import logging
from datetime import date, datetime

from core.utils.datetime import now as utc_now, parse_iso_date
from core.workflow.errors import InvalidState, ValidationError
from database.models.applications import (
    Application,
    ApplicationNote,
    ApplicationStatus,
    InterviewType,
)

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.PENDING: frozenset(
        {ApplicationStatus.REVIEWING, ApplicationStatus.REJECTED}
    ),
    ApplicationStatus.REVIEWING: frozenset(
        {ApplicationStatus.SHORTLISTED, ApplicationStatus.REJECTED}
    ),
    ApplicationStatus.SHORTLISTED: frozenset(
        {ApplicationStatus.INTERVIEW_SCHEDULED, ApplicationStatus.REJECTED}
    ),
    ApplicationStatus.INTERVIEW_SCHEDULED: frozenset(
        {ApplicationStatus.HIRED, ApplicationStatus.REJECTED}
    ),
    ApplicationStatus.HIRED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def _parse_status(value: str) -> ApplicationStatus:
    try:
        return ApplicationStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ApplicationStatus)
        raise ValidationError.for_field("status", f"Status must be one of: {allowed}")


def can_move(current: str, target: str) -> bool:
    """Whether the transition table allows ``current -> target``."""
    return ApplicationStatus(target) in ALLOWED_TRANSITIONS[ApplicationStatus(current)]


def update_status(
    application: Application, new_status: str, strict: bool = True
) -> Application:
    """
    Move an application to ``new_status``.

    Raises:
        ValidationError: unknown status
        InvalidState: (strict mode) the transition table forbids the move
    """
    target = _parse_status(new_status)
    current = ApplicationStatus(application.status)

    if strict:
        if target == ApplicationStatus.INTERVIEW_SCHEDULED:
            raise InvalidState(
                "Interviews must be scheduled through the interview endpoint",
                {"from": current.value, "to": target.value},
            )
        if current in TERMINAL_STATUSES:
            raise InvalidState(
                f"Application is already {current.value}",
                {"from": current.value, "to": target.value},
            )
        if not can_move(current, target):
            raise InvalidState(
                f"Cannot change application status from {current.value} to {target.value}",
                {"from": current.value, "to": target.value},
            )

    application.status = target
    logger.debug(
        "Application %s status %s -> %s", application.id, current.value, target.value
    )
    return application


def add_note(
    application: Application,
    content: str | None,
    author_id: int,
    now: datetime | None = None,
) -> ApplicationNote:
    """
    Append a note to the application.

    Raises:
        ValidationError: content is missing or blank
    """
    cleaned = (content or "").strip()
    if not cleaned:
        raise ValidationError.for_field("content", "Note content is required")

    note = ApplicationNote(
        content=cleaned,
        added_by_id=author_id,
        added_at=now or utc_now(),
    )
    application.notes.append(note)
    return note


def schedule_interview(
    application: Application,
    date: str | date | None,
    time: str | None,
    type: str | None = None,
    location: str | None = None,
    notes: str | None = None,
) -> Application:
    """
    Schedule an interview for a shortlisted application.

    Input problems are reported together, one entry per field, before the
    state precondition is looked at.

    Raises:
        ValidationError: date/time missing, date not ``YYYY-MM-DD``, or
            unknown interview type
        InvalidState: application is not shortlisted
    """
    errors: list[dict[str, str]] = []

    interview_date = None
    if date is None or (isinstance(date, str) and not date.strip()):
        errors.append({"field": "date", "message": "Interview date is required"})
    elif isinstance(date, str):
        interview_date = parse_iso_date(date)
        if interview_date is None:
            errors.append(
                {"field": "date", "message": "Interview date must be in YYYY-MM-DD format"}
            )
    else:
        interview_date = date

    if not (time or "").strip():
        errors.append({"field": "time", "message": "Interview time is required"})

    interview_type = None
    if type:
        try:
            interview_type = InterviewType(type)
        except ValueError:
            allowed = ", ".join(t.value for t in InterviewType)
            errors.append(
                {"field": "type", "message": f"Interview type must be one of: {allowed}"}
            )

    if errors:
        raise ValidationError("Invalid interview details", errors)

    current = ApplicationStatus(application.status)
    if current != ApplicationStatus.SHORTLISTED:
        raise InvalidState(
            "Only shortlisted applications can be scheduled for an interview",
            {"status": current.value},
        )

    application.interview_scheduled = True
    application.interview_date = interview_date
    application.interview_time = time.strip()
    application.interview_type = interview_type
    application.interview_location = (location or "").strip() or None
    application.interview_notes = (notes or "").strip() or None
    application.status = ApplicationStatus.INTERVIEW_SCHEDULED
    return application
