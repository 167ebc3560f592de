from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Dict, Optional

from flask import current_app
from flask_login import current_user
from jose import JWTError, jwt

from .errors import AuthenticationError, Forbidden


def create_access_token(user) -> str:
    expires = datetime.now(timezone.utc) + timedelta(days=current_app.config["JWT_EXPIRES_DAYS"])
    claims = {
        "sub": str(user.id),
        "role": user.role,
        "exp": expires,
    }
    return jwt.encode(
        claims,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
        )
    except JWTError:
        return None


def bearer_token(header_value: Optional[str]) -> Optional[str]:
    if not header_value:
        return None
    scheme, _, token = header_value.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def roles_required(*roles: str):
    """Reject the request unless the current user holds one of ``roles``.

    Authentication is checked first, so an anonymous caller gets a 401
    rather than a 403.
    """

    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                raise AuthenticationError()
            if current_user.role not in roles:
                raise Forbidden(f"{' or '.join(r.capitalize() for r in roles)} access only")
            return view(*args, **kwargs)

        return wrapped

    return decorator


admin_required = roles_required("admin")
organizer_required = roles_required("organizer", "admin")
