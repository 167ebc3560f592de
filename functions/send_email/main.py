from __future__ import annotations

import json
import os
from typing import Any, Dict, Tuple

import requests

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"


def _json(status: int, payload: Dict[str, Any]) -> Tuple[str, int, Dict[str, str]]:
    return (json.dumps(payload), status, {"Content-Type": "application/json"})


def send_email(request):
    # Shared secret between the API and this function
    expected = os.environ.get("EMAIL_FUNCTION_SECRET", "")
    provided = request.headers.get("X-Email-Secret", "")
    if not expected or provided != expected:
        return _json(401, {"error": "unauthorized"})

    data = request.get_json(silent=True) or {}
    to_email = (data.get("to_email") or "").strip()
    subject = (data.get("subject") or "").strip() or "CampusConnect"
    text = (data.get("text") or "").strip()
    html = (data.get("html") or "").strip()

    if not to_email:
        return _json(400, {"error": "bad_request", "message": "to_email is required"})
    if not text and not html:
        return _json(400, {"error": "bad_request", "message": "text or html is required"})

    api_key = os.environ.get("SENDGRID_API_KEY", "")
    from_email = os.environ.get("SENDGRID_FROM_EMAIL", "")
    if not api_key:
        return _json(500, {"error": "server_error", "message": "SENDGRID_API_KEY not set"})
    if not from_email:
        return _json(500, {"error": "server_error", "message": "SENDGRID_FROM_EMAIL not set"})

    content = []
    if text:
        content.append({"type": "text/plain", "value": text})
    if html:
        content.append({"type": "text/html", "value": html})

    payload = {
        "personalizations": [{"to": [{"email": to_email}]}],
        "from": {"email": from_email, "name": "CampusConnect"},
        "subject": subject,
        "content": content,
    }

    try:
        r = requests.post(
            SENDGRID_URL,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            json=payload,
            timeout=10,
        )
    except requests.RequestException as e:
        return _json(502, {"error": "sendgrid_unreachable", "message": str(e)[:300]})

    # SendGrid returns 202 on accepted
    if r.status_code != 202:
        return _json(
            502,
            {
                "error": "sendgrid_error",
                "status": r.status_code,
                "message": r.text[:300],
            },
        )

    return _json(200, {"ok": True})
