from flask import Blueprint, jsonify
from flask_login import current_user

from ..security import admin_required
from ..services import moderation

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/events/pending")
@admin_required
def pending_events():
    events = moderation.list_pending_events()
    return jsonify({"events": [e.to_dict() for e in events]}), 200


@admin_bp.put("/events/<int:event_id>/approve")
@admin_required
def approve_event(event_id: int):
    event = moderation.approve_event(event_id, current_user)
    return jsonify({"message": "Event approved successfully", "event": event.to_dict()}), 200


@admin_bp.delete("/events/<int:event_id>/reject")
@admin_required
def reject_event(event_id: int):
    moderation.reject_event(event_id, current_user)
    return jsonify({"message": "Event rejected and removed"}), 200


@admin_bp.get("/organizers/pending")
@admin_required
def pending_organizers():
    users = moderation.list_pending_organizers()
    return jsonify({"organizers": [u.to_dict() for u in users]}), 200


@admin_bp.put("/organizers/<int:user_id>/approve")
@admin_required
def approve_organizer(user_id: int):
    user = moderation.approve_organizer(user_id, current_user)
    return jsonify({"message": "Organizer approved", "user": user.to_dict()}), 200


@admin_bp.delete("/organizers/<int:user_id>/reject")
@admin_required
def reject_organizer(user_id: int):
    moderation.reject_organizer(user_id, current_user)
    return jsonify({"message": "Organizer rejected and removed"}), 200
