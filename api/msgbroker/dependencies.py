import logging
import secrets

from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader

from msgbroker.database import settings

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(
    api_key: str | None = Security(api_key_header),
) -> str:
    """Guard for producer/consumer write endpoints.

    With no keys configured (development) every request is let through.
    """
    keys = settings.get_api_keys()
    if not keys:
        return ""
    if api_key and any(secrets.compare_digest(api_key, key) for key in keys):
        return api_key
    logger.warning("Rejected request with invalid or missing API key")
    raise HTTPException(status_code=401, detail="Invalid or missing API key")
