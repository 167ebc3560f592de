"""HTTP client for the CampusConnect API, as used by the web front end."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests


class ApiError(Exception):
    def __init__(self, status: int, message: str, code: Optional[str] = None):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message
        self.code = code


class CampusConnectClient:
    def __init__(self, base_url: str, token: Optional[str] = None,
                 session: Optional[requests.Session] = None, timeout: int = 15):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.user: Optional[Dict[str, Any]] = None
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        r = self.session.request(
            method, f"{self.base_url}/api{path}", headers=headers, timeout=self.timeout, **kwargs
        )
        try:
            body = r.json()
        except ValueError:
            body = {}

        if r.status_code >= 400:
            raise ApiError(r.status_code, body.get("message") or r.reason or "Request failed", body.get("error"))
        return body

    def _remember(self, body: Dict[str, Any]) -> Dict[str, Any]:
        self.token = body.get("token")
        self.user = body.get("user")
        return self.user

    # --- accounts ---

    def register(self, name: str, email: str, password: str, role: str = "student",
                 organization: Optional[str] = None) -> Dict[str, Any]:
        payload = {"name": name, "email": email, "password": password, "role": role}
        if organization:
            payload["organization"] = organization
        return self._remember(self._request("POST", "/auth/register", json=payload))

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self._remember(self._request("POST", "/auth/login", json={"email": email, "password": password}))

    def logout(self) -> None:
        self.token = None
        self.user = None

    def me(self) -> Dict[str, Any]:
        self.user = self._request("GET", "/auth/me")["user"]
        return self.user

    def update_profile(self, **fields) -> Dict[str, Any]:
        self.user = self._request("PUT", "/auth/profile", json=fields)["user"]
        return self.user

    def forgot_password(self, email: str) -> str:
        return self._request("POST", "/auth/forgotpassword", json={"email": email})["message"]

    def reset_password(self, token: str, password: str) -> str:
        return self._request("PUT", f"/auth/resetpassword/{token}", json={"password": password})["message"]

    # --- discovery ---

    def list_events(self, search: Optional[str] = None, category: Optional[str] = None,
                    sort: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {k: v for k, v in (("search", search), ("category", category), ("sort", sort)) if v}
        return self._request("GET", "/events", params=params)["events"]

    def upcoming_slider(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/events/upcoming/slider")["events"]

    def calendar(self, year: int, month: int) -> List[Dict[str, Any]]:
        return self._request("GET", "/events/calendar/month", params={"year": year, "month": month})["events"]

    def get_event(self, event_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/events/{event_id}")["event"]

    # --- organizer ---

    def create_event(self, poster: Optional[tuple] = None, **fields) -> Dict[str, Any]:
        """``poster`` is a ``(filename, fileobj, content_type)`` tuple."""
        if poster:
            return self._request("POST", "/events", data=fields, files={"poster": poster})["event"]
        return self._request("POST", "/events", json=fields)["event"]

    def update_event(self, event_id: int, poster: Optional[tuple] = None, **fields) -> Dict[str, Any]:
        if poster:
            return self._request("PUT", f"/events/{event_id}", data=fields, files={"poster": poster})["event"]
        return self._request("PUT", f"/events/{event_id}", json=fields)["event"]

    def delete_event(self, event_id: int) -> str:
        return self._request("DELETE", f"/events/{event_id}")["message"]

    def my_events(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/events/my/events")["events"]

    def attendees(self, event_id: int) -> List[Dict[str, Any]]:
        return self._request("GET", f"/events/{event_id}/attendees")["attendees"]

    # --- student ---

    def register_for_event(self, event_id: int) -> Dict[str, Any]:
        return self._request("POST", f"/events/{event_id}/register")["registration"]

    def registration_status(self, event_id: int) -> bool:
        return self._request("GET", f"/events/{event_id}/registration-status")["isRegistered"]

    def my_registrations(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/events/my/registrations")["registrations"]

    # --- admin ---

    def pending_events(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/admin/events/pending")["events"]

    def approve_event(self, event_id: int) -> Dict[str, Any]:
        return self._request("PUT", f"/admin/events/{event_id}/approve")["event"]

    def reject_event(self, event_id: int) -> str:
        return self._request("DELETE", f"/admin/events/{event_id}/reject")["message"]

    def pending_organizers(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/admin/organizers/pending")["organizers"]

    def approve_organizer(self, user_id: int) -> Dict[str, Any]:
        return self._request("PUT", f"/admin/organizers/{user_id}/approve")["user"]

    def reject_organizer(self, user_id: int) -> str:
        return self._request("DELETE", f"/admin/organizers/{user_id}/reject")["message"]

    def dashboard(self) -> Dict[str, Any]:
        """The landing view for whoever is signed in."""
        if not self.token:
            raise ApiError(401, "Not logged in")
        user = self.user or self.me()
        role = user.get("role")

        if role == "admin":
            return {
                "role": role,
                "pendingEvents": self.pending_events(),
                "pendingOrganizers": self.pending_organizers(),
            }
        if role == "organizer":
            return {"role": role, "isApproved": user.get("isApproved"), "events": self.my_events()}
        return {
            "role": role,
            "profileComplete": all(user.get(f) for f in ("batch", "rollNumber", "branch")),
            "registrations": self.my_registrations(),
        }
