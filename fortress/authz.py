"""Flask-Login wiring. Browser sessions and API clients both resolve to a ``User``;
API clients send ``Authorization: Bearer <api_token>``."""
from __future__ import annotations

import hmac
import logging

from flask import jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db, login_manager

logger = logging.getLogger(__name__)

AUTH_REQUIRED = "Authentication required"


def configure_login_manager(app):
    login_manager.init_app(app)
    login_manager.unauthorized_handler(_unauthorized)
    login_manager.user_loader(_load_session_user)
    login_manager.request_loader(_load_token_user)


def _unauthorized():
    wants_json = request.is_json or request.path.startswith("/api/") or any(
        "application/json" in request.headers.get(header, "") for header in ("Accept", "Content-Type")
    )
    if wants_json:
        return jsonify({"error": AUTH_REQUIRED}), 401
    return AUTH_REQUIRED, 401


def _load_session_user(user_id: str):
    from .models import User

    try:
        key = int(user_id)
    except (TypeError, ValueError):
        return None
    return _active_or_none(lambda: db.session.get(User, key))


def _load_token_user(req):
    scheme, _, credential = (req.headers.get("Authorization") or "").partition(" ")
    token = credential.strip()
    if scheme.lower() != "bearer" or not token:
        return None

    from .models import User

    user = _active_or_none(lambda: User.query.filter(User.api_token == token).first())
    # Constant-time check on the stored value as well as the indexed lookup
    if user is not None and hmac.compare_digest(user.api_token or "", token):
        return user
    return None


def _active_or_none(lookup):
    """Run ``lookup`` and drop users who are inactive or whose organization is inactive."""
    try:
        user = lookup()
    except SQLAlchemyError as e:
        logger.warning("User lookup failed: %s", e)
        db.session.rollback()
        return None
    if user is None or not user.is_active:
        return None
    organization = getattr(user, "organization", None)
    if organization is None or not organization.is_active:
        return None
    return user
