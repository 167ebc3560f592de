from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager

# Application-wide extension instances

db = SQLAlchemy()
login_manager = LoginManager()

__all__ = [
    "db",
    "login_manager",
]
