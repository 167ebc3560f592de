"""Event discovery queries and organizer-side event writes."""
from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy import select

from ..errors import Forbidden, NotFound, ValidationError
from ..extensions import db
from ..models import EVENT_CATEGORIES, Event, User
from ..schemas import EventCreate, EventUpdate
from . import get_posters, get_tasks
from .jobs import delete_poster_job
from .logging_service import log_event
from .moderation import delete_event
from .registrations import refresh_registration_count

logger = logging.getLogger(__name__)

SLIDER_WINDOW_DAYS = 7


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def list_approved_events(search: Optional[str] = None, category: Optional[str] = None,
                         sort: Optional[str] = None) -> List[Event]:
    stmt = select(Event).where(Event.is_approved.is_(True))

    search = (search or "").strip()
    if search:
        stmt = stmt.where(Event.title.ilike(f"%{_escape_like(search)}%", escape="\\"))

    category = (category or "").strip()
    if category and category.lower() != "all":
        if category not in EVENT_CATEGORIES:
            raise ValidationError(f"category must be one of {', '.join(EVENT_CATEGORIES)}")
        stmt = stmt.where(Event.category == category)

    sort = (sort or "asc").strip().lower()
    if sort not in ("asc", "desc"):
        raise ValidationError("sort must be 'asc' or 'desc'")
    order = Event.date.desc() if sort == "desc" else Event.date.asc()

    return list(db.session.scalars(stmt.order_by(order, Event.id.asc())).all())


def upcoming_slider_events(today: Optional[date] = None) -> List[Event]:
    today = today or datetime.now().date()
    start = datetime.combine(today, time.min)
    end = datetime.combine(today + timedelta(days=SLIDER_WINDOW_DAYS), time(23, 59, 59))
    stmt = (
        select(Event)
        .where(Event.is_approved.is_(True), Event.date >= start, Event.date <= end)
        .order_by(Event.date.asc(), Event.id.asc())
    )
    return list(db.session.scalars(stmt).all())


def calendar_events(year, month) -> List[dict]:
    try:
        year = int(year)
        month = int(month)
    except (TypeError, ValueError):
        raise ValidationError("year and month must be integers")
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    if not 1 <= year <= 9999:
        raise ValidationError("year is out of range")

    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1)
    end = datetime(year, month, last_day, 23, 59, 59, 999999)
    stmt = (
        select(Event)
        .where(Event.is_approved.is_(True), Event.date >= start, Event.date <= end)
        .order_by(Event.date.asc(), Event.id.asc())
    )
    return [e.to_calendar_dict() for e in db.session.scalars(stmt).all()]


def get_event_or_404(event_id: int) -> Event:
    event = db.session.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    return event


def can_manage(event: Event, user) -> bool:
    if user is None or not getattr(user, "is_authenticated", False):
        return False
    return user.role == "admin" or event.is_owned_by(user)


def get_event_for_viewer(event_id: int, viewer) -> Event:
    event = get_event_or_404(event_id)
    if not event.is_approved and not can_manage(event, viewer):
        raise Forbidden("This event is awaiting approval")
    return event


def list_my_events(organizer: User) -> List[Event]:
    stmt = select(Event).where(Event.organizer_id == organizer.id).order_by(Event.created_at.desc())
    events = list(db.session.scalars(stmt).all())
    for event in events:
        refresh_registration_count(event)
    return events


def _upload_poster(poster) -> Optional[str]:
    if poster is None or not poster.filename:
        return None
    return get_posters().upload(poster)


def create_event(organizer: User, payload: EventCreate, poster=None) -> Event:
    if organizer.role not in ("organizer", "admin"):
        raise Forbidden("Organizer access only")
    if organizer.role == "organizer" and organizer.is_approved is not True:
        raise Forbidden("Your organizer account is awaiting admin approval")

    event = Event(
        title=payload.title,
        description=payload.description,
        category=payload.category,
        date=payload.date,
        time=payload.time,
        venue=payload.venue,
        registration_link=payload.registration_link,
        has_amenities=payload.has_amenities,
        registration_deadline=payload.registration_deadline,
        organizer_id=organizer.id,
        organization_name=organizer.organization,
        is_approved=False,
    )
    event.poster_url = _upload_poster(poster)

    db.session.add(event)
    db.session.commit()

    log_event("event_created", user_id=organizer.id, meta={"event_id": event.id, "title": event.title})
    return event


def update_event(event_id: int, editor: User, patch: EventUpdate, poster=None) -> Event:
    event = get_event_or_404(event_id)
    if not can_manage(event, editor):
        raise Forbidden("You can only edit your own events")

    for field, value in patch.changes().items():
        setattr(event, field, value)

    old_poster = None
    new_poster = _upload_poster(poster)
    if new_poster:
        old_poster, event.poster_url = event.poster_url, new_poster

    # Every edit goes back through moderation
    event.is_approved = False
    db.session.commit()

    if old_poster:
        get_tasks().submit(delete_poster_job, poster_url=old_poster)

    log_event("event_updated", user_id=editor.id, meta={"event_id": event.id})
    return event


def delete_event_by_owner(event_id: int, editor: User) -> None:
    event = get_event_or_404(event_id)
    if not can_manage(event, editor):
        raise Forbidden("You can only delete your own events")
    delete_event(event)
    log_event("event_deleted", user_id=editor.id, meta={"event_id": event_id})
