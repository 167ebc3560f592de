"""Daily purge of events that ended more than ``RETENTION_DAYS`` ago."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from flask import Flask
from sqlalchemy import select

from ..extensions import db
from ..models import Event
from .logging_service import log_event
from .moderation import delete_event

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30
JOB_ID = "purge_expired_events"


@dataclass
class SweepReport:
    cutoff: datetime
    scanned: int = 0
    expired: int = 0
    deleted: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)


def _local_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


def _as_datetime(value) -> Optional[datetime]:
    # Rows written by older clients may hold a bare ISO string
    if isinstance(value, datetime):
        return _local_naive(value)
    if isinstance(value, str):
        try:
            return _local_naive(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def purge_expired_events(now: Optional[datetime] = None,
                         retention_days: int = DEFAULT_RETENTION_DAYS) -> SweepReport:
    now = now or datetime.now()
    report = SweepReport(cutoff=now - timedelta(days=retention_days))
    logger.info("Retention sweep started, cutoff %s", report.cutoff.isoformat())

    # Classified here rather than in SQL so mixed date representations compare safely
    events = list(db.session.scalars(select(Event)).all())
    report.scanned = len(events)
    expired = []
    for event in events:
        event_date = _as_datetime(event.date)
        if event_date is not None and event_date < report.cutoff:
            expired.append(event)
    report.expired = len(expired)

    if not expired:
        logger.info("Retention sweep: nothing to purge")
        return report

    for event in expired:
        event_id, title = event.id, event.title
        try:
            delete_event(event)
        except Exception:
            db.session.rollback()
            report.failed.append(event_id)
            logger.exception("Retention sweep could not purge event %s (%s)", event_id, title)
            continue
        report.deleted.append(event_id)
        logger.info("Purged expired event %s (%s)", event_id, title)

    log_event(
        "events_purged",
        meta={"cutoff": report.cutoff.isoformat(), "deleted": report.deleted, "failed": report.failed},
    )
    logger.info(
        "Retention sweep finished: %d purged, %d failed", len(report.deleted), len(report.failed)
    )
    return report


class RetentionScheduler:
    """Owns the background scheduler that runs the sweep once a day."""

    def __init__(self, app: Flask, hour: int = 3, minute: int = 0,
                 retention_days: int = DEFAULT_RETENTION_DAYS):
        self.app = app
        self.hour = hour
        self.minute = minute
        self.retention_days = retention_days
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def run_once(self) -> Optional[SweepReport]:
        with self.app.app_context():
            try:
                return purge_expired_events(retention_days=self.retention_days)
            except Exception:
                logger.exception("Retention sweep failed; will retry on the next run")
                db.session.rollback()
                return None

    def start(self) -> None:
        if self.running:
            return
        self._scheduler = BackgroundScheduler(daemon=True)
        self._scheduler.add_job(
            self.run_once,
            CronTrigger(hour=self.hour, minute=self.minute),
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("Retention sweep scheduled daily at %02d:%02d", self.hour, self.minute)

    def shutdown(self) -> None:
        if self.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
