import click
from flask import Flask
from sqlalchemy import select

from .extensions import db
from .models import User
from .services import get_tasks
from .services.retention import purge_expired_events


def register_commands(app: Flask) -> None:
    @app.cli.command("init-db")
    def init_db():
        """Create tables if they don't exist."""
        db.create_all()
        print("Database initialised.")

    @app.cli.command("create-admin")
    @click.argument("email")
    @click.argument("name")
    @click.password_option()
    def create_admin(email, name, password):
        """Create an admin account (admins cannot sign themselves up)."""
        email = email.strip().lower()
        if db.session.scalar(select(User).where(User.email == email)):
            raise click.ClickException(f"{email} is already registered")

        admin = User(name=name.strip(), email=email, role="admin")
        admin.set_password(password)
        db.session.add(admin)
        db.session.commit()
        print(f"Admin {email} created.")

    @app.cli.command("cleanup-events")
    @click.option("--days", type=int, default=None, help="Override the retention window.")
    def cleanup_events(days):
        """Run the expired-event purge now instead of waiting for the schedule."""
        report = purge_expired_events(retention_days=days or app.config["RETENTION_DAYS"])
        print(
            f"Scanned {report.scanned} events, {report.expired} older than "
            f"{report.cutoff:%Y-%m-%d %H:%M}: {len(report.deleted)} purged, {len(report.failed)} failed."
        )

    @app.cli.command("run-worker")
    @click.option("--burst", is_flag=True, help="Exit once the queue is empty.")
    def run_worker(burst):
        """Process queued background jobs (emails, poster cleanup)."""
        tasks = get_tasks()
        print(f"Listening on queue {tasks.queue.name!r}")
        tasks.work(burst=burst)
