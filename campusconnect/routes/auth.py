import hashlib
import json
import secrets
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

import requests
from flask import Blueprint, current_app, jsonify, redirect, request, session, url_for
from flask_login import current_user, login_required
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..errors import AlreadyExists, AuthenticationError, ValidationError
from ..extensions import db
from ..models import User
from ..schemas import ProfileUpdate
from ..security import create_access_token
from ..services import get_tasks
from ..services.jobs import send_password_reset_job
from ..services.logging_service import log_event

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

MIN_PASSWORD_LENGTH = 6
SELF_SERVICE_ROLES = ("student", "organizer")

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


def _auth_response(user: User, status: int = 200):
    return jsonify({"user": user.to_dict(), "token": create_access_token(user)}), status


def _find_by_email(email: str):
    return db.session.scalar(select(User).where(User.email == email))


def _naive_utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    role = (data.get("role") or "student").strip().lower()
    organization = (data.get("organization") or "").strip() or None

    if not name or not email or not password:
        raise ValidationError("Name, email and password are required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError("Role must be student or organizer")
    if role == "organizer" and not organization:
        raise ValidationError("Organization name is required for organizers")

    if _find_by_email(email):
        raise AlreadyExists("User already exists")

    user = User(
        name=name,
        email=email,
        role=role,
        organization=organization if role == "organizer" else None,
        is_approved=False if role == "organizer" else None,
    )
    user.set_password(password)
    db.session.add(user)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise AlreadyExists("User already exists")

    log_event("user_registered", user_id=user.id, meta={"email": user.email, "role": user.role})
    return _auth_response(user, 201)


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = _find_by_email(email)
    if not user or not user.check_password(password):
        raise AuthenticationError("Invalid credentials")

    log_event("user_login", user_id=user.id)
    return _auth_response(user)


@auth_bp.get("/me")
@login_required
def me():
    return jsonify({"user": current_user.to_dict()}), 200


@auth_bp.put("/profile")
@login_required
def update_profile():
    patch = ProfileUpdate.model_validate(request.get_json(silent=True) or {})

    changed = []
    for field, value in patch.changes().items():
        # Blank values keep what is already on file
        if value is None:
            continue
        setattr(current_user, field, value)
        changed.append(field)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise AlreadyExists("Roll number already exists")

    log_event("profile_updated", user_id=current_user.id, meta={"fields": changed})
    return jsonify({"user": current_user.to_dict()}), 200


@auth_bp.post("/forgotpassword")
def forgot_password():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    if not email:
        raise ValidationError("Email is required")

    user = _find_by_email(email)
    if user:
        token = secrets.token_urlsafe(32)
        user.password_reset_token_hash = _hash_reset_token(token)
        user.password_reset_expires_at = _naive_utcnow() + timedelta(
            minutes=current_app.config["PASSWORD_RESET_TTL_MINUTES"]
        )
        db.session.commit()

        reset_url = f"{current_app.config['CLIENT_URL']}/reset-password/{token}"
        get_tasks().submit(send_password_reset_job, to_email=user.email, name=user.name, reset_url=reset_url)
        log_event("password_reset_requested", user_id=user.id)

    # Same answer whether or not the account exists
    return jsonify({"message": "If that email is registered, a reset link has been sent"}), 200


@auth_bp.put("/resetpassword/<string:token>")
def reset_password(token: str):
    data = request.get_json(silent=True) or {}
    password = data.get("password") or ""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    user = db.session.scalar(
        select(User).where(
            User.password_reset_token_hash == _hash_reset_token(token),
            User.password_reset_expires_at.isnot(None),
            User.password_reset_expires_at > _naive_utcnow(),
        )
    )
    if not user:
        raise ValidationError("Invalid or expired token")

    user.set_password(password)
    user.password_reset_token_hash = None
    user.password_reset_expires_at = None
    db.session.commit()

    log_event("password_reset", user_id=user.id)
    return jsonify({"message": "Password updated, you can now log in"}), 200


def _google_redirect_uri() -> str:
    return current_app.config.get("GOOGLE_REDIRECT_URI") or url_for("auth.google_callback", _external=True)


@auth_bp.get("/google")
def google_login():
    client_id = current_app.config.get("GOOGLE_CLIENT_ID")
    if not client_id:
        raise ValidationError("Google sign-in is not configured")

    state = secrets.token_urlsafe(16)
    session["oauth_state"] = state
    params = {
        "client_id": client_id,
        "redirect_uri": _google_redirect_uri(),
        "response_type": "code",
        "scope": "openid email profile",
        "state": state,
        "prompt": "select_account",
    }
    return redirect(f"{GOOGLE_AUTH_URL}?{urlencode(params)}")


def _fetch_google_profile(code: str) -> dict:
    token_r = requests.post(
        GOOGLE_TOKEN_URL,
        data={
            "code": code,
            "client_id": current_app.config["GOOGLE_CLIENT_ID"],
            "client_secret": current_app.config["GOOGLE_CLIENT_SECRET"],
            "redirect_uri": _google_redirect_uri(),
            "grant_type": "authorization_code",
        },
        timeout=10,
    )
    token_r.raise_for_status()
    access_token = token_r.json()["access_token"]

    info_r = requests.get(
        GOOGLE_USERINFO_URL,
        headers={"Authorization": f"Bearer {access_token}"},
        timeout=10,
    )
    info_r.raise_for_status()
    return info_r.json()


def _find_or_create_google_user(profile: dict) -> User:
    email = (profile.get("email") or "").strip().lower()
    if not email:
        raise ValueError("Google profile has no email")

    user = _find_by_email(email)
    if user:
        if not user.google_id and profile.get("sub"):
            user.google_id = profile["sub"]
            db.session.commit()
        return user

    user = User(
        name=(profile.get("name") or email.split("@")[0]).strip(),
        email=email,
        role="student",
        google_id=profile.get("sub"),
    )
    # Password login stays impossible until a reset
    user.set_password(secrets.token_urlsafe(32))
    db.session.add(user)
    db.session.commit()
    log_event("user_registered", user_id=user.id, meta={"email": user.email, "via": "google"})
    return user


@auth_bp.get("/google/callback")
def google_callback():
    client_url = current_app.config["CLIENT_URL"]
    expected_state = session.pop("oauth_state", None)
    code = request.args.get("code")

    if not code or not expected_state or request.args.get("state") != expected_state:
        return redirect(f"{client_url}/login?error=oauth_failed")

    try:
        user = _find_or_create_google_user(_fetch_google_profile(code))
    except (requests.RequestException, KeyError, ValueError) as e:
        db.session.rollback()
        current_app.logger.warning("Google sign-in failed: %r", e)
        return redirect(f"{client_url}/login?error=oauth_failed")

    log_event("user_oauth_login", user_id=user.id)
    query = urlencode({
        "token": create_access_token(user),
        "user": json.dumps(user.to_dict()),
    })
    return redirect(f"{client_url}/oauth-success?{query}")
