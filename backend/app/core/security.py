import logging
import secrets

from fastapi import Header

from app.core.config import settings
from app.core.errors import Unauthorized

logger = logging.getLogger("dropbin")


def _matches(supplied: str | None, expected: str) -> bool:
    if supplied is None:
        return False
    return secrets.compare_digest(supplied.encode(), expected.encode())


async def require_admin(x_admin_pin: str | None = Header(None, alias="X-Admin-Pin")) -> None:
    if not _matches(x_admin_pin, settings.ADMIN_MASTER_PIN):
        logger.warning("Rejected admin request with bad X-Admin-Pin")
        raise Unauthorized()


async def require_cron_secret(authorization: str | None = Header(None)) -> None:
    # purge stays open when no secret is configured
    if not settings.CRON_SECRET:
        return
    if not _matches(authorization, f"Bearer {settings.CRON_SECRET}"):
        logger.warning("Rejected purge request with bad Authorization header")
        raise Unauthorized()
