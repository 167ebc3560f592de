from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from ..schemas import EventCreate, EventUpdate
from ..security import organizer_required, roles_required
from ..services import events as event_service
from ..services import registrations as registration_service

events_bp = Blueprint("events", __name__, url_prefix="/api/events")


def _event_payload():
    """JSON body, or the non-file fields of a multipart form, plus the poster."""
    if request.mimetype == "multipart/form-data":
        return request.form.to_dict(), request.files.get("poster")
    return request.get_json(silent=True) or {}, None


# --- collection views ---

@events_bp.get("")
def list_events():
    events = event_service.list_approved_events(
        search=request.args.get("search"),
        category=request.args.get("category"),
        sort=request.args.get("sort"),
    )
    return jsonify({"events": [e.to_dict() for e in events]}), 200


@events_bp.get("/upcoming/slider")
def upcoming_slider():
    events = event_service.upcoming_slider_events()
    return jsonify({"events": [e.to_dict() for e in events]}), 200


@events_bp.get("/calendar/month")
def calendar_month():
    events = event_service.calendar_events(request.args.get("year"), request.args.get("month"))
    return jsonify({"events": events}), 200


@events_bp.get("/my/events")
@organizer_required
def my_events():
    events = event_service.list_my_events(current_user)
    return jsonify({"events": [e.to_dict() for e in events]}), 200


@events_bp.get("/my/registrations")
@login_required
def my_registrations():
    registrations = registration_service.list_my_registrations(current_user)
    return jsonify({"registrations": [r.to_dict(include_event=True) for r in registrations]}), 200


# --- event writes ---

@events_bp.post("")
@organizer_required
def create_event():
    data, poster = _event_payload()
    payload = EventCreate.model_validate(data)
    event = event_service.create_event(current_user, payload, poster=poster)
    return jsonify({"event": event.to_dict()}), 201


@events_bp.put("/<int:event_id>")
@organizer_required
def update_event(event_id: int):
    data, poster = _event_payload()
    patch = EventUpdate.model_validate(data)
    event = event_service.update_event(event_id, current_user, patch, poster=poster)
    return jsonify({"message": "Event updated and sent for re-approval", "event": event.to_dict()}), 200


@events_bp.delete("/<int:event_id>")
@organizer_required
def delete_event(event_id: int):
    event_service.delete_event_by_owner(event_id, current_user)
    return jsonify({"message": "Event deleted"}), 200


# --- single event ---

@events_bp.get("/<int:event_id>")
def event_detail(event_id: int):
    event = event_service.get_event_for_viewer(event_id, current_user)
    return jsonify({"event": event.to_dict()}), 200


@events_bp.post("/<int:event_id>/register")
@login_required
def register_for_event(event_id: int):
    registration = registration_service.register_for_event(event_id, current_user)
    return jsonify({
        "message": "Registered successfully",
        "registration": registration.to_dict(),
    }), 201


@events_bp.get("/<int:event_id>/registration-status")
@login_required
def registration_status(event_id: int):
    registered = registration_service.registration_status(event_id, current_user)
    return jsonify({"isRegistered": registered}), 200


@events_bp.get("/<int:event_id>/attendees")
@roles_required("organizer", "admin")
def attendees(event_id: int):
    registrations = registration_service.list_attendees(event_id, current_user)
    return jsonify({
        "count": len(registrations),
        "attendees": [r.to_dict() for r in registrations],
    }), 200
