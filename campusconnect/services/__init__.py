"""Per-app collaborators, constructed in ``create_app`` and stored on
``app.extensions`` so tests can swap them for fakes."""
from flask import current_app

NOTIFIER_KEY = "campusconnect.notifier"
POSTERS_KEY = "campusconnect.posters"
TASKS_KEY = "campusconnect.tasks"
SCHEDULER_KEY = "campusconnect.scheduler"


def get_notifier():
    return current_app.extensions[NOTIFIER_KEY]


def get_posters():
    return current_app.extensions[POSTERS_KEY]


def get_tasks():
    return current_app.extensions[TASKS_KEY]
