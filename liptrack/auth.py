"""
Optional API key check for the lip-track routes.

When LIPTRACK_API_KEY is set, every /lip-track request must send the same
value in the X-LipTrack-API-Key header. Health endpoints stay open.
"""

import logging
import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from liptrack.config import get_settings

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-LipTrack-API-Key"


def _reject(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": API_KEY_HEADER},
    )


async def verify_api_key(
    api_key: Optional[str] = Header(None, alias=API_KEY_HEADER),
) -> None:
    """
    Router dependency validating the lip-track API key.

    Raises:
        HTTPException: 401 if the key is configured and the header is
            missing or does not match
    """
    expected_key = get_settings().liptrack_api_key
    if not expected_key:
        # No key configured: open access (local development)
        return

    if not api_key:
        logger.warning(f"Lip-track request without {API_KEY_HEADER} header")
        raise _reject("Missing API key")

    if not secrets.compare_digest(api_key, expected_key):
        logger.warning("Lip-track request with an invalid API key")
        raise _reject("Invalid API key")
