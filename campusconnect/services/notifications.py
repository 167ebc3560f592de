"""Outbound email through the ``send_email`` Cloud Function."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class EmailNotifier:
    def __init__(self, function_url: str, secret: str, timeout: int = 15):
        self.function_url = (function_url or "").strip()
        self.secret = (secret or "").strip()
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.function_url and self.secret)

    def send(self, to_email: str, subject: str, text: str, html: Optional[str] = None) -> Dict[str, Any]:
        if not self.function_url:
            raise RuntimeError("EMAIL_FUNCTION_URL not set")
        if not self.secret:
            raise RuntimeError("EMAIL_FUNCTION_SECRET not set")

        payload = {"to_email": to_email, "subject": subject, "text": text}
        if html:
            payload["html"] = html

        try:
            r = requests.post(
                self.function_url,
                headers={"X-Email-Secret": self.secret, "Content-Type": "application/json"},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RuntimeError(f"Email Function unreachable: {e}")

        if r.status_code >= 400:
            raise RuntimeError(f"Email Function HTTP {r.status_code}: {r.text[:200]}")

        logger.info("Email sent to %s (%s)", to_email, subject)
        return r.json() if r.content else {}

    def send_registration_confirmation(self, to_email: str, student_name: str, event_title: str,
                                       event_date: str, event_time: str, venue: str) -> Dict[str, Any]:
        text = (
            f"Hi {student_name},\n\n"
            f"You are registered for \"{event_title}\".\n"
            f"When: {event_date} {event_time}\n"
            f"Where: {venue}\n\n"
            "See you there!\nCampusConnect"
        )
        html = (
            f"<p>Hi {student_name},</p>"
            f"<p>You are registered for <strong>{event_title}</strong>.</p>"
            f"<p>When: {event_date} {event_time}<br>Where: {venue}</p>"
        )
        return self.send(to_email, f"Registration confirmed: {event_title}", text, html)

    def send_password_reset(self, to_email: str, name: str, reset_url: str) -> Dict[str, Any]:
        text = (
            f"Hi {name},\n\n"
            "We received a request to reset your CampusConnect password. "
            f"Open this link to choose a new one:\n{reset_url}\n\n"
            "If you did not ask for this, you can ignore this email."
        )
        return self.send(to_email, "Reset your CampusConnect password", text)
