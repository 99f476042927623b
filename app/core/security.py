"""
API key check for the monitoring endpoints
"""

import secrets
from typing import Optional

from fastapi import Header, Request

from app.core.exceptions import AuthenticationError


def validate_monitoring_key(request: Request, api_key: Optional[str] = Header(None, alias="X-API-Key")):
    """Require X-API-Key when MONITORING_API_KEY is configured"""
    expected = request.app.state.settings.MONITORING_API_KEY
    if expected is None:
        return None

    if api_key is None or not secrets.compare_digest(api_key.encode("utf-8"), expected.encode("utf-8")):
        request.app.state.logger.warning(
            f"MONITORING_AUTH_FAILED | Endpoint: {request.url.path} | "
            f"IP: {request.client.host if request.client else 'unknown'}"
        )
        raise AuthenticationError("Invalid API Key")
    return api_key
