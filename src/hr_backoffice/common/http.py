from __future__ import annotations

from datetime import date, datetime
from functools import wraps
from typing import Any, Callable, Dict, Optional

import structlog
from flask import g, request

from ..core.exceptions import AuthenticationError, ValidationError
from ..permissions.model import Actor
from .datetime_utils import parse_iso_date, parse_iso_datetime


def bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Not authorized, no token")
    return token.strip()


def make_login_required(authenticate: Callable[[str], Actor]):
    """Decorator factory: resolves the bearer token into ``g.actor`` once per request."""

    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            g.actor = authenticate(bearer_token())
            structlog.contextvars.bind_contextvars(user_id=g.actor.user_id, company_id=g.actor.company_id)
            return view(*args, **kwargs)

        return wrapper

    return login_required


def current_actor() -> Actor:
    return g.actor


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def date_field(data: Dict[str, Any], name: str, *, required: bool = True) -> Optional[date]:
    value = data.get(name)
    if not value:
        if required:
            raise ValidationError(f"{name} is required")
        return None
    try:
        return parse_iso_date(str(value)[:10])
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")


def datetime_field(data: Dict[str, Any], name: str) -> datetime:
    value = data.get(name)
    if not value:
        raise ValidationError(f"{name} is required")
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO datetime")


def int_arg(name: str, default: Optional[int] = None) -> Optional[int]:
    value = request.args.get(name)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
