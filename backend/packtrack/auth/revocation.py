"""JWT token revocation using a Redis blacklist.

Tokens revoked on logout stay blacklisted until their natural expiry.
User-wide revocation (password change) is handled by the ``token_version``
claim checked against the user row, not here.
"""

import logging
import time

from packtrack.utils.redis_client import get_redis

logger = logging.getLogger(__name__)


class TokenRevocation:
    """Manage JWT token revocation with Redis."""

    @staticmethod
    async def revoke_token(token: str, expires_at: float) -> bool:
        """Add token to revocation list until ``expires_at`` (unix time)."""
        ttl = int(expires_at - time.time())
        if ttl <= 0:
            # Already expired
            return True

        try:
            redis_client = await get_redis()
            await redis_client.setex(f"revoked:{token}", ttl, str(int(time.time())))
            return True
        except Exception as e:
            logger.error(f"Failed to revoke token: {e}")
            return False

    @staticmethod
    async def is_revoked(token: str) -> bool:
        try:
            redis_client = await get_redis()
            exists = await redis_client.exists(f"revoked:{token}")
            return exists > 0
        except Exception as e:
            logger.error(f"Failed to check token revocation: {e}")
            # Fail closed
            return True
