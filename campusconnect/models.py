from datetime import datetime, timezone
from typing import List
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from .extensions import db

ROLE_STUDENT = "student"
ROLE_ORGANIZER = "organizer"
ROLE_ADMIN = "admin"
ROLES = (ROLE_STUDENT, ROLE_ORGANIZER, ROLE_ADMIN)

EVENT_CATEGORIES = ("Workshop", "Talk", "Hackathon", "Seminar", "Other")

ACADEMIC_FIELDS = ("batch", "roll_number", "branch")


def utcnow():
    return datetime.now(timezone.utc)


def _iso(dt):
    if dt is None:
        return None
    if isinstance(dt, datetime):
        return dt.isoformat()
    return str(dt)


class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=ROLE_STUDENT)
    organization = db.Column(db.String(200), nullable=True)
    # Only meaningful for organizers; None for everyone else
    is_approved = db.Column(db.Boolean, nullable=True)

    batch = db.Column(db.String(20), nullable=True)
    roll_number = db.Column(db.String(50), unique=True, nullable=True)
    branch = db.Column(db.String(120), nullable=True)

    google_id = db.Column(db.String(64), unique=True, nullable=True)
    password_reset_token_hash = db.Column(db.String(64), nullable=True, index=True)
    password_reset_expires_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    events = db.relationship("Event", back_populates="organizer", cascade="all, delete-orphan")

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def is_student(self) -> bool:
        return self.role == ROLE_STUDENT

    @property
    def is_organizer(self) -> bool:
        return self.role == ROLE_ORGANIZER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def missing_profile_fields(self) -> List[str]:
        return [f for f in ACADEMIC_FIELDS if not (getattr(self, f) or "").strip()]

    def has_complete_profile(self) -> bool:
        return not self.missing_profile_fields()

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "organization": self.organization,
            "isApproved": self.is_approved,
            "batch": self.batch,
            "rollNumber": self.roll_number,
            "branch": self.branch,
            "createdAt": _iso(self.created_at),
        }


class Event(db.Model):
    __tablename__ = "events"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(20), nullable=False, default="Other")
    date = db.Column(db.DateTime, nullable=False, index=True)
    time = db.Column(db.String(40), nullable=False)
    venue = db.Column(db.String(200), nullable=False)

    organizer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    organization_name = db.Column(db.String(200), nullable=True)

    is_approved = db.Column(db.Boolean, nullable=False, default=False, index=True)
    poster_url = db.Column(db.String(500), nullable=True)
    registration_link = db.Column(db.String(500), nullable=True)
    has_amenities = db.Column(db.Boolean, nullable=False, default=False)
    registration_count = db.Column(db.Integer, nullable=False, default=0)
    registration_deadline = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    organizer = db.relationship("User", back_populates="events")

    def is_owned_by(self, user) -> bool:
        return user is not None and getattr(user, "id", None) == self.organizer_id

    def to_dict(self):
        organizer = self.organizer
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "date": _iso(self.date),
            "time": self.time,
            "venue": self.venue,
            "organizer": {
                "id": organizer.id,
                "name": organizer.name,
                "email": organizer.email,
                "organization": organizer.organization,
            } if organizer else None,
            "organizationName": self.organization_name,
            "isApproved": self.is_approved,
            "poster": self.poster_url,
            "registrationLink": self.registration_link,
            "hasAmenities": self.has_amenities,
            "registrationCount": self.registration_count,
            "registrationDeadline": _iso(self.registration_deadline),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def to_calendar_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "date": _iso(self.date),
            "time": self.time,
            "venue": self.venue,
            "category": self.category,
        }


class Registration(db.Model):
    __tablename__ = "registrations"

    id = db.Column(db.Integer, primary_key=True)

    event_id = db.Column(db.Integer, db.ForeignKey("events.id"), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Copied from the student's profile at registration time, never updated
    student_name = db.Column(db.String(120), nullable=False)
    student_batch = db.Column(db.String(20), nullable=False)
    student_roll_number = db.Column(db.String(50), nullable=False)
    student_branch = db.Column(db.String(120), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    event = db.relationship("Event")
    student = db.relationship("User")

    __table_args__ = (
        db.UniqueConstraint("event_id", "student_id", name="uq_registration_event_student"),
    )

    def student_details(self):
        return {
            "name": self.student_name,
            "batch": self.student_batch,
            "rollNumber": self.student_roll_number,
            "branch": self.student_branch,
        }

    def to_dict(self, include_event: bool = False):
        data = {
            "id": self.id,
            "eventId": self.event_id,
            "studentId": self.student_id,
            "studentDetails": self.student_details(),
            "createdAt": _iso(self.created_at),
        }
        if include_event:
            data["event"] = self.event.to_dict() if self.event else None
        return data
