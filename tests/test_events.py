import io
from datetime import datetime, timedelta

from campusconnect.extensions import db
from campusconnect.models import Event, Registration
from tests.base import BaseTestCase


class EventListingTests(BaseTestCase):
    def test_list_events(self):
        r = self.client.get("/api/events")
        self.assertEqual(r.status_code, 200)

        data = r.get_json()
        self.assertIn("events", data)
        self.assertEqual([e["id"] for e in data["events"]], [self.event_id])

    def test_unapproved_events_not_listed(self):
        self.add_event(title="Hidden", approved=False)
        titles = [e["title"] for e in self.client.get("/api/events").get_json()["events"]]
        self.assertNotIn("Hidden", titles)

    def test_search_is_case_insensitive_partial_match(self):
        self.add_event(title="Workshop on AI", category="Workshop")
        self.add_event(title="Seminar Day", category="Seminar")

        r = self.client.get("/api/events?search=work")
        titles = [e["title"] for e in r.get_json()["events"]]
        self.assertEqual(titles, ["Workshop on AI"])

    def test_search_treats_wildcards_literally(self):
        self.add_event(title="100% Attendance Drive")
        r = self.client.get("/api/events?search=%25")
        self.assertEqual([e["title"] for e in r.get_json()["events"]], ["100% Attendance Drive"])

    def test_category_filter(self):
        self.add_event(title="Hack Night", category="Hackathon")
        r = self.client.get("/api/events?category=Hackathon")
        self.assertEqual([e["title"] for e in r.get_json()["events"]], ["Hack Night"])

        r = self.client.get("/api/events?category=All")
        self.assertEqual(len(r.get_json()["events"]), 2)

        r = self.client.get("/api/events?category=Party")
        self.assertEqual(r.status_code, 400)

    def test_sort_by_date(self):
        self.add_event(title="Later", days_from_now=20)
        self.add_event(title="Sooner", days_from_now=1)

        asc = [e["title"] for e in self.client.get("/api/events?sort=asc").get_json()["events"]]
        desc = [e["title"] for e in self.client.get("/api/events?sort=desc").get_json()["events"]]
        self.assertEqual(asc, ["Sooner", "Seed Event", "Later"])
        self.assertEqual(desc, ["Later", "Seed Event", "Sooner"])

    def test_upcoming_slider_window(self):
        today = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
        self.add_event(title="Today", date=today)
        self.add_event(title="Edge", date=today + timedelta(days=7, hours=23, minutes=59))
        self.add_event(title="Too Far", date=today + timedelta(days=8))
        self.add_event(title="Yesterday", date=today - timedelta(seconds=1))
        self.add_event(title="Pending Soon", date=today + timedelta(days=1), approved=False)

        titles = [e["title"] for e in self.client.get("/api/events/upcoming/slider").get_json()["events"]]
        self.assertEqual(titles, ["Today", "Seed Event", "Edge"])

    def test_calendar_month(self):
        self.add_event(title="March Talk", date=datetime(2031, 3, 31, 18, 0))
        self.add_event(title="April Talk", date=datetime(2031, 4, 1, 9, 0))

        r = self.client.get("/api/events/calendar/month?year=2031&month=3")
        self.assertEqual(r.status_code, 200)
        events = r.get_json()["events"]
        self.assertEqual([e["title"] for e in events], ["March Talk"])
        self.assertEqual(set(events[0]), {"id", "title", "date", "time", "venue", "category"})

        r = self.client.get("/api/events/calendar/month?year=2031&month=13")
        self.assertEqual(r.status_code, 400)


class EventVisibilityTests(BaseTestCase):
    def setUp(self):
        super().setUp()
        self.pending_id = self.add_event(title="Pending", approved=False)

    def test_approved_event_visible_to_anyone(self):
        r = self.client.get(f"/api/events/{self.event_id}")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.get_json()["event"]["organizer"]["id"], self.organizer_id)

    def test_unapproved_event_hidden_from_students_and_anonymous(self):
        r = self.client.get(f"/api/events/{self.pending_id}", headers=self.login_student())
        self.assertEqual(r.status_code, 403)

        r = self.client.get(f"/api/events/{self.pending_id}")
        self.assertEqual(r.status_code, 403)

    def test_unapproved_event_visible_to_owner_and_admin(self):
        for headers in (self.login_organizer(), self.login_admin()):
            r = self.client.get(f"/api/events/{self.pending_id}", headers=headers)
            self.assertEqual(r.status_code, 200)

    def test_missing_event(self):
        r = self.client.get("/api/events/99999")
        self.assertEqual(r.status_code, 404)


class EventWriteTests(BaseTestCase):
    payload = {
        "title": "Intro to Rust",
        "description": "Hands-on session",
        "category": "Workshop",
        "date": "2030-05-01",
        "time": "3:00 PM",
        "venue": "Lab 4",
        "hasAmenities": True,
        "registrationLink": "https://forms.example.com/rust",
    }

    def test_create_event_as_organizer(self):
        r = self.client.post("/api/events", json=self.payload, headers=self.login_organizer())
        self.assertEqual(r.status_code, 201)
        event = r.get_json()["event"]
        self.assertIs(event["isApproved"], False)
        self.assertEqual(event["organizationName"], "Coding Club")
        self.assertEqual(event["registrationCount"], 0)
        self.assertIs(event["hasAmenities"], True)
        self.assertTrue(event["date"].startswith("2030-05-01"))

    def test_create_event_forbidden_for_students(self):
        r = self.client.post("/api/events", json=self.payload, headers=self.login_student())
        self.assertEqual(r.status_code, 403)

    def test_create_event_validates_payload(self):
        bad = dict(self.payload, category="Party")
        r = self.client.post("/api/events", json=bad, headers=self.login_organizer())
        self.assertEqual(r.status_code, 400)

        missing = {k: v for k, v in self.payload.items() if k != "venue"}
        r = self.client.post("/api/events", json=missing, headers=self.login_organizer())
        self.assertEqual(r.status_code, 400)
        self.assertIn("venue", r.get_json()["message"])

    def test_create_event_with_poster_upload(self):
        data = dict(self.payload, hasAmenities="false")
        data["poster"] = (io.BytesIO(b"\x89PNG fake image"), "poster.png", "image/png")
        r = self.client.post("/api/events", data=data, headers=self.login_organizer(),
                             content_type="multipart/form-data")
        self.assertEqual(r.status_code, 201)
        event = r.get_json()["event"]
        self.assertTrue(event["poster"].startswith("https://posters.s3.test.amazonaws.com/"))
        self.assertIs(event["hasAmenities"], False)
        self.assertEqual(self.posters.uploaded[0][0], "poster.png")

    def test_oversized_upload_rejected(self):
        data = dict(self.payload, hasAmenities="true")
        data["poster"] = (io.BytesIO(b"x" * (3 * 1024 * 1024)), "huge.png", "image/png")
        r = self.client.post("/api/events", data=data, headers=self.login_organizer(),
                             content_type="multipart/form-data")
        self.assertEqual(r.status_code, 413)

    def test_update_rejects_unknown_fields(self):
        r = self.client.put(f"/api/events/{self.event_id}", json={"isApproved": True},
                            headers=self.login_organizer())
        self.assertEqual(r.status_code, 400)

    def test_update_cannot_clear_required_field(self):
        r = self.client.put(f"/api/events/{self.event_id}", json={"title": None},
                            headers=self.login_organizer())
        self.assertEqual(r.status_code, 400)

    def test_update_replaces_poster_and_cleans_old_one(self):
        old = "https://posters.s3.test.amazonaws.com/campusconnect_events/old.png"
        with self.app.app_context():
            db.session.get(Event, self.event_id).poster_url = old
            db.session.commit()

        data = {"title": "Seed Event v2", "poster": (io.BytesIO(b"img"), "new.png", "image/png")}
        r = self.client.put(f"/api/events/{self.event_id}", data=data, headers=self.login_organizer(),
                            content_type="multipart/form-data")
        self.assertEqual(r.status_code, 200)
        event = r.get_json()["event"]
        self.assertNotEqual(event["poster"], old)
        self.assertIs(event["isApproved"], False)
        self.assertEqual(self.posters.deleted, [old])

    def test_other_organizer_cannot_edit_or_delete(self):
        self.add_user("rival@test.com", role="organizer", organization="Drama", is_approved=True)
        headers = self.login("rival@test.com")

        r = self.client.put(f"/api/events/{self.event_id}", json={"title": "Mine now"}, headers=headers)
        self.assertEqual(r.status_code, 403)
        r = self.client.delete(f"/api/events/{self.event_id}", headers=headers)
        self.assertEqual(r.status_code, 403)

    def test_owner_delete_cascades_registrations(self):
        self.client.post(f"/api/events/{self.event_id}/register", headers=self.login_student())

        r = self.client.delete(f"/api/events/{self.event_id}", headers=self.login_organizer())
        self.assertEqual(r.status_code, 200)
        with self.app.app_context():
            self.assertIsNone(db.session.get(Event, self.event_id))
            self.assertEqual(db.session.query(Registration).filter_by(event_id=self.event_id).count(), 0)

    def test_my_events_lists_only_own_events(self):
        rival_id = self.add_user("rival@test.com", role="organizer", organization="Drama", is_approved=True)
        self.add_event(title="Rival Event", organizer_id=rival_id)

        r = self.client.get("/api/events/my/events", headers=self.login_organizer())
        self.assertEqual([e["title"] for e in r.get_json()["events"]], ["Seed Event"])

        r = self.client.get("/api/events/my/events", headers=self.login_student())
        self.assertEqual(r.status_code, 403)


class HealthTests(BaseTestCase):
    def test_health(self):
        r = self.client.get("/api/health")
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.get_json()["ok"])
