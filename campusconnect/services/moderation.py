"""Admin approve/reject of events and organizer accounts.

Rejecting is a hard delete. Deleting an event always takes its registrations
with it and tries to remove the hosted poster; a poster that cannot be removed
does not stop the delete.
"""
from __future__ import annotations

import logging
from typing import List

from sqlalchemy import delete, select

from ..errors import NotFound
from ..extensions import db
from ..models import Event, Registration, User
from . import get_posters
from .logging_service import log_event

logger = logging.getLogger(__name__)


def delete_poster_quietly(poster_url) -> None:
    if not poster_url:
        return
    try:
        get_posters().delete(poster_url)
    except Exception as e:
        logger.warning("Could not delete poster %s: %r", poster_url, e)


def delete_event(event: Event) -> None:
    delete_poster_quietly(event.poster_url)
    db.session.execute(delete(Registration).where(Registration.event_id == event.id))
    db.session.delete(event)
    db.session.commit()


def list_pending_events() -> List[Event]:
    stmt = select(Event).where(Event.is_approved.is_(False)).order_by(Event.created_at.asc())
    return list(db.session.scalars(stmt).all())


def approve_event(event_id: int, admin: User) -> Event:
    event = db.session.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")

    event.is_approved = True
    db.session.commit()
    log_event("event_approved", user_id=admin.id, meta={"event_id": event.id})
    return event


def reject_event(event_id: int, admin: User) -> None:
    event = db.session.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")

    title = event.title
    delete_event(event)
    log_event("event_rejected", user_id=admin.id, meta={"event_id": event_id, "title": title})


def _pending_organizer_or_404(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user or user.role != "organizer" or user.is_approved is True:
        raise NotFound("Pending organizer not found")
    return user


def list_pending_organizers() -> List[User]:
    stmt = (
        select(User)
        .where(User.role == "organizer", User.is_approved.isnot(True))
        .order_by(User.created_at.asc())
    )
    return list(db.session.scalars(stmt).all())


def approve_organizer(user_id: int, admin: User) -> User:
    user = _pending_organizer_or_404(user_id)
    user.is_approved = True
    db.session.commit()
    log_event("organizer_approved", user_id=admin.id, meta={"organizer_id": user.id})
    return user


def reject_organizer(user_id: int, admin: User) -> None:
    user = _pending_organizer_or_404(user_id)

    for event in list(user.events):
        delete_event(event)

    email = user.email
    db.session.delete(user)
    db.session.commit()
    log_event("organizer_rejected", user_id=admin.id, meta={"organizer_id": user_id, "email": email})
