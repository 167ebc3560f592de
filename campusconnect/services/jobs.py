"""Background job functions for the RQ worker.

Jobs run inside the worker's app context (or the request's, when the queue
is synchronous) and look their collaborators up there.
"""
from . import get_notifier, get_posters


def send_registration_confirmation_job(to_email, student_name, event_title, event_date, event_time, venue):
    return get_notifier().send_registration_confirmation(
        to_email=to_email,
        student_name=student_name,
        event_title=event_title,
        event_date=event_date,
        event_time=event_time,
        venue=venue,
    )


def send_password_reset_job(to_email, name, reset_url):
    return get_notifier().send_password_reset(to_email, name, reset_url)


def delete_poster_job(poster_url):
    return get_posters().delete(poster_url)
