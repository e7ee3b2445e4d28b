from __future__ import annotations

import logging

from fastapi import Request

from obcflow.core.config import settings
from obcflow.models.mixins import SYSTEM_ACTOR

logger = logging.getLogger(__name__)


def _normalized_auth_mode() -> str:
    raw = (settings.AUTH_MODE or "legacy_header").strip().lower()
    if raw != "legacy_header":
        logger.warning("auth_mode_unsupported mode=%s fallback=legacy_header", raw)
    return "legacy_header"


def _email_from_legacy_header(request: Request) -> str | None:
    email = request.headers.get("X-User-Email") or request.headers.get("X-User") or ""
    return email.strip().lower() or None


def get_request_email(request: Request) -> str:
    """Actor recorded on history, audit and task rows for this request."""
    _normalized_auth_mode()
    return _email_from_legacy_header(request) or SYSTEM_ACTOR
