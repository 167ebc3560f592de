import io
import unittest
from unittest import mock

import requests
from fakeredis import FakeServer, FakeStrictRedis
from flask import Flask
from werkzeug.datastructures import FileStorage

from campusconnect.errors import ValidationError
from campusconnect.services import NOTIFIER_KEY, POSTERS_KEY, jobs
from campusconnect.services.notifications import EmailNotifier
from campusconnect.services.posters import PosterStore
from campusconnect.services.tasks import TaskQueue
from tests.fakes import FakeNotifier, FakePosterStore


class TaskQueueTests(unittest.TestCase):
    def setUp(self):
        self.app = Flask(__name__)
        self.app.config["TESTING"] = True
        self.posters = FakePosterStore()
        self.notifier = FakeNotifier()
        self.app.extensions[POSTERS_KEY] = self.posters
        self.app.extensions[NOTIFIER_KEY] = self.notifier
        self.redis = FakeStrictRedis(server=FakeServer())

    def test_sync_job_runs_inline_in_app_context(self):
        tasks = TaskQueue(self.redis, is_async=False)
        with self.app.app_context():
            job = tasks.submit(jobs.delete_poster_job, poster_url="https://posters.test/a.png")

        self.assertTrue(job.is_finished)
        self.assertEqual(self.posters.deleted, ["https://posters.test/a.png"])
        self.assertEqual(tasks.failures, [])

    def test_sync_failure_is_recorded_not_raised(self):
        self.notifier.fail = True
        tasks = TaskQueue(self.redis, is_async=False)

        with self.app.app_context(), mock.patch("campusconnect.services.tasks.log_event") as audit:
            job = tasks.submit(
                jobs.send_password_reset_job,
                to_email="a@test.com", name="Asha", reset_url="http://client.test/reset-password/x",
            )

        self.assertTrue(job.is_failed)
        self.assertEqual([j.id for j in tasks.failures], [job.id])
        audit.assert_called_once()
        self.assertEqual(audit.call_args.args[0], "task_failed")
        self.assertEqual(audit.call_args.kwargs["meta"]["task"], "campusconnect.services.jobs.send_password_reset_job")

    def test_async_submit_only_queues(self):
        tasks = TaskQueue(self.redis, name="emails")
        with self.app.app_context():
            job = tasks.submit(jobs.delete_poster_job, poster_url="https://posters.test/b.png")

        self.assertEqual(tasks.queue.job_ids, [job.id])
        self.assertEqual(job.kwargs, {"poster_url": "https://posters.test/b.png"})
        self.assertEqual(self.posters.deleted, [])


class EmailNotifierTests(unittest.TestCase):
    def test_unconfigured_notifier_raises(self):
        with self.assertRaises(RuntimeError):
            EmailNotifier("", "").send("a@test.com", "Hi", "Body")

    def test_posts_to_email_function(self):
        notifier = EmailNotifier("https://fn.test/send_email", "s3cret")
        response = mock.Mock(status_code=200, content=b'{"ok": true}')
        response.json.return_value = {"ok": True}

        with mock.patch("campusconnect.services.notifications.requests.post", return_value=response) as post:
            result = notifier.send_registration_confirmation(
                to_email="asha@test.com", student_name="Asha", event_title="Hack Night",
                event_date="01 May 2030", event_time="6 PM", venue="Lab 1",
            )

        self.assertEqual(result, {"ok": True})
        args, kwargs = post.call_args
        self.assertEqual(args[0], "https://fn.test/send_email")
        self.assertEqual(kwargs["headers"]["X-Email-Secret"], "s3cret")
        self.assertEqual(kwargs["json"]["to_email"], "asha@test.com")
        self.assertIn("Hack Night", kwargs["json"]["subject"])

    def test_http_error_raises(self):
        notifier = EmailNotifier("https://fn.test/send_email", "s3cret")
        response = mock.Mock(status_code=502, text="bad gateway")
        with mock.patch("campusconnect.services.notifications.requests.post", return_value=response):
            with self.assertRaises(RuntimeError):
                notifier.send("a@test.com", "Hi", "Body")

    def test_network_error_raises(self):
        notifier = EmailNotifier("https://fn.test/send_email", "s3cret")
        with mock.patch("campusconnect.services.notifications.requests.post",
                        side_effect=requests.ConnectionError("refused")):
            with self.assertRaises(RuntimeError):
                notifier.send("a@test.com", "Hi", "Body")


class PosterStoreTests(unittest.TestCase):
    def setUp(self):
        self.s3 = mock.Mock()
        self.store = PosterStore("campus-posters", "ap-south-1", client=self.s3)

    def _file(self, data=b"\x89PNG", mimetype="image/png", filename="poster.PNG"):
        return FileStorage(stream=io.BytesIO(data), filename=filename, content_type=mimetype)

    def test_upload_returns_bucket_url(self):
        url = self.store.upload(self._file())
        self.assertTrue(url.startswith("https://campus-posters.s3.ap-south-1.amazonaws.com/campusconnect_events/"))
        self.assertTrue(url.endswith(".png"))
        kwargs = self.s3.put_object.call_args.kwargs
        self.assertEqual(kwargs["Bucket"], "campus-posters")
        self.assertEqual(kwargs["ContentType"], "image/png")

    def test_upload_rejects_non_images_and_large_files(self):
        with self.assertRaises(ValidationError):
            self.store.upload(self._file(mimetype="application/pdf", filename="x.pdf"))
        with self.assertRaises(ValidationError):
            self.store.upload(self._file(data=b"x" * (2 * 1024 * 1024 + 1)))
        self.s3.put_object.assert_not_called()

    def test_delete_only_touches_own_bucket(self):
        self.assertTrue(self.store.delete(
            "https://campus-posters.s3.ap-south-1.amazonaws.com/campusconnect_events/abc.png"
        ))
        self.s3.delete_object.assert_called_once_with(
            Bucket="campus-posters", Key="campusconnect_events/abc.png"
        )

        self.assertFalse(self.store.delete("https://cdn.example.com/abc.png"))
        self.assertFalse(self.store.delete(None))
        self.assertEqual(self.s3.delete_object.call_count, 1)
