from tests.base import BaseTestCase


class EndToEndTests(BaseTestCase):
    def test_organizer_to_attendee_flow(self):
        # organizer signs up and waits for approval
        r = self.client.post("/api/auth/register", json={
            "name": "Quiz Master",
            "email": "quiz@test.com",
            "password": "secret1",
            "role": "organizer",
            "organization": "Quiz Club",
        })
        self.assertEqual(r.status_code, 201)
        organizer_id = r.get_json()["user"]["id"]
        organizer = {"Authorization": f"Bearer {r.get_json()['token']}"}
        admin = self.login_admin()

        r = self.client.put(f"/api/admin/organizers/{organizer_id}/approve", headers=admin)
        self.assertEqual(r.status_code, 200)

        # organizer creates an event, pending until reviewed
        r = self.client.post("/api/events", json={
            "title": "Inter-college Quiz",
            "description": "Teams of two",
            "category": "Other",
            "date": "2030-08-15T10:00:00",
            "time": "10:00 AM",
            "venue": "Library Hall",
        }, headers=organizer)
        self.assertEqual(r.status_code, 201)
        event_id = r.get_json()["event"]["id"]

        student = self.login_student()
        r = self.client.post(f"/api/events/{event_id}/register", headers=student)
        self.assertEqual(r.status_code, 404)

        r = self.client.put(f"/api/admin/events/{event_id}/approve", headers=admin)
        self.assertEqual(r.status_code, 200)

        r = self.client.post(f"/api/events/{event_id}/register", headers=student)
        self.assertEqual(r.status_code, 201)

        r = self.client.get(f"/api/events/{event_id}/attendees", headers=organizer)
        self.assertEqual(r.status_code, 200)
        attendees = r.get_json()["attendees"]
        self.assertEqual(len(attendees), 1)
        self.assertEqual(attendees[0]["studentDetails"], {
            "name": "Asha Rao", "batch": "2022", "rollNumber": "22CS101", "branch": "CSE",
        })

        r = self.client.get(f"/api/events/{event_id}")
        self.assertEqual(r.get_json()["event"]["registrationCount"], 1)
