"""Student registration workflow.

A registration stores a copy of the student's academic profile as it was at
the time of registering; later profile edits do not touch existing rows.
Duplicate registrations are caught by the ``(event_id, student_id)`` unique
constraint, and the event counter is bumped with a single UPDATE in the same
transaction as the insert.
"""
from __future__ import annotations

import logging
from typing import List

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from ..errors import AlreadyRegistered, Forbidden, NotFound, ProfileIncomplete
from ..extensions import db
from ..models import Event, Registration, User
from . import get_tasks
from .jobs import send_registration_confirmation_job
from .logging_service import log_event

logger = logging.getLogger(__name__)

PROFILE_FIELD_LABELS = {
    "batch": "batch",
    "roll_number": "roll number",
    "branch": "branch",
}


def register_for_event(event_id: int, student: User) -> Registration:
    if student.role != "student":
        raise Forbidden("Only students can register for events")

    event = db.session.get(Event, event_id)
    if not event or not event.is_approved:
        raise NotFound("Event not found or not available for registration")

    missing = student.missing_profile_fields()
    if missing:
        raise ProfileIncomplete(PROFILE_FIELD_LABELS[f] for f in missing)

    registration = Registration(
        event_id=event.id,
        student_id=student.id,
        student_name=student.name,
        student_batch=student.batch.strip(),
        student_roll_number=student.roll_number.strip(),
        student_branch=student.branch.strip(),
    )
    db.session.add(registration)

    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise AlreadyRegistered()

    db.session.execute(
        update(Event)
        .where(Event.id == event.id)
        .values(registration_count=Event.registration_count + 1)
    )
    db.session.commit()

    log_event(
        "registration_created",
        user_id=student.id,
        meta={"event_id": event.id, "registration_id": registration.id},
    )

    get_tasks().submit(
        send_registration_confirmation_job,
        to_email=student.email,
        student_name=student.name,
        event_title=event.title,
        event_date=event.date.strftime("%d %b %Y"),
        event_time=event.time,
        venue=event.venue,
    )
    return registration


def list_my_registrations(student: User) -> List[Registration]:
    stmt = (
        select(Registration)
        .where(Registration.student_id == student.id)
        .order_by(Registration.created_at.desc(), Registration.id.desc())
    )
    return list(db.session.scalars(stmt).all())


def registration_status(event_id: int, user: User) -> bool:
    stmt = select(Registration.id).where(
        Registration.event_id == event_id, Registration.student_id == user.id
    )
    return db.session.scalar(stmt) is not None


def list_attendees(event_id: int, caller: User) -> List[Registration]:
    event = db.session.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    if caller.role != "admin" and not event.is_owned_by(caller):
        raise Forbidden("You can only view attendees of your own events")

    stmt = (
        select(Registration)
        .where(Registration.event_id == event_id)
        .order_by(Registration.created_at.asc(), Registration.id.asc())
    )
    return list(db.session.scalars(stmt).all())


def count_registrations(event_id: int) -> int:
    return db.session.scalar(
        select(func.count(Registration.id)).where(Registration.event_id == event_id)
    ) or 0


def refresh_registration_count(event: Event) -> int:
    """Recount from the registrations table and repair the cached counter."""
    actual = count_registrations(event.id)
    if event.registration_count != actual:
        logger.info(
            "Registration counter drift on event %s: cached=%s actual=%s",
            event.id, event.registration_count, actual,
        )
        event.registration_count = actual
        db.session.commit()
    return actual
