from __future__ import annotations

import hmac

from fastapi import Header, HTTPException, status

from ..config import settings
from ..services.llm_enrich import Enricher
from ..services.llm_enrich import get_enricher as _default_enricher
from ..services.storage import BrowserFactory, browser_for_tenant


def require_cron_secret(authorization: str | None = Header(default=None)) -> None:
    """Scheduled callers authenticate with ``Authorization: Bearer <CRON_SECRET>``."""
    secret = settings.cron_secret
    if not secret:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Cron secret not configured")

    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(token.strip(), secret):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def get_browser_factory() -> BrowserFactory:
    return browser_for_tenant


def get_enricher() -> Enricher:
    return _default_enricher()
