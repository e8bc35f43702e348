from __future__ import annotations

import hmac
import logging


logger = logging.getLogger(__name__)


def verify_admin_key(provided: str | None, expected: str | None, env: str) -> bool:
    if not expected:
        if env.lower() in {"dev", "local"}:
            logger.warning("ADMIN_API_KEY not configured; accepting admin request in dev mode")
            return True
        logger.error("ADMIN_API_KEY not configured; rejecting admin request")
        return False

    if not provided:
        return False

    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
