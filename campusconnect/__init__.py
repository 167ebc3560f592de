import atexit
import logging

import redis
from flask import Flask, jsonify
from typing import Optional, Dict, Any
from .config import Config
from .errors import AuthenticationError, register_error_handlers
from .extensions import db, login_manager
from .models import User
from .security import bearer_token, decode_access_token
from .services import NOTIFIER_KEY, POSTERS_KEY, SCHEDULER_KEY, TASKS_KEY
from .services.notifications import EmailNotifier
from .services.posters import PosterStore
from .services.retention import RetentionScheduler
from .services.tasks import TaskQueue


def _init_services(app: Flask) -> None:
    cfg = app.config
    app.extensions[NOTIFIER_KEY] = EmailNotifier(cfg["EMAIL_FUNCTION_URL"], cfg["EMAIL_FUNCTION_SECRET"])
    app.extensions[POSTERS_KEY] = PosterStore(
        cfg["S3_BUCKET_NAME"],
        cfg["AWS_REGION"],
        key_prefix=cfg["POSTER_KEY_PREFIX"],
        max_bytes=cfg["MAX_POSTER_BYTES"],
    )

    # redis-py connects lazily, on the first enqueue
    app.extensions[TASKS_KEY] = TaskQueue(
        redis.from_url(cfg["REDIS_URL"]),
        name=cfg["TASK_QUEUE"],
        is_async=cfg["RQ_ASYNC"],
    )

    scheduler = RetentionScheduler(
        app,
        hour=cfg["CLEANUP_HOUR"],
        minute=cfg["CLEANUP_MINUTE"],
        retention_days=cfg["RETENTION_DAYS"],
    )
    app.extensions[SCHEDULER_KEY] = scheduler
    if cfg["CLEANUP_ENABLED"] and not app.testing:
        scheduler.start()
        atexit.register(scheduler.shutdown)


def create_app(config_overrides: Optional[Dict[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)

    if config_overrides:
        app.config.update(config_overrides)

    if not app.debug and not app.testing:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    db.init_app(app)
    login_manager.init_app(app)
    register_error_handlers(app)
    _init_services(app)

    @login_manager.request_loader
    def load_user_from_request(request):
        token = bearer_token(request.headers.get("Authorization"))
        if not token:
            return None
        claims = decode_access_token(token)
        if not claims or not str(claims.get("sub", "")).isdigit():
            return None
        return db.session.get(User, int(claims["sub"]))

    @login_manager.unauthorized_handler
    def unauthorized():
        raise AuthenticationError()

    from .routes.auth import auth_bp
    app.register_blueprint(auth_bp)

    from .routes.events import events_bp
    app.register_blueprint(events_bp)

    from .routes.admin import admin_bp
    app.register_blueprint(admin_bp)

    @app.get("/api/health")
    def health():
        return jsonify({"ok": True, "service": "CampusConnect API"}), 200

    from .commands import register_commands
    register_commands(app)

    return app
