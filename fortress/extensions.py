"""Flask extension singletons, bound to the app in ``create_app``."""
from __future__ import annotations

from flask import request
from flask_limiter import Limiter
from flask_login import LoginManager, current_user
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect

__all__ = ["db", "migrate", "csrf", "limiter", "login_manager"]

db = SQLAlchemy()
# Batch mode so ALTERs also work on SQLite
migrate = Migrate(compare_type=True, render_as_batch=True)
csrf = CSRFProtect()
login_manager = LoginManager()


def _rate_limit_key() -> str:
    """Per-user bucket for authenticated callers, per-address otherwise."""
    if current_user and current_user.is_authenticated:
        return f"user:{current_user.get_id()}"
    return f"ip:{request.remote_addr or 'unknown'}"


# Limits themselves come from RATELIMIT_DEFAULT and the per-route decorators
limiter = Limiter(key_func=_rate_limit_key)
