"""
Bearer token issuance for the App Store Connect API.

Tokens are ES256 JWTs signed with the team's API key. A minted token is cached
on the provider and reused until it is close to expiry.
"""

import time
from typing import Optional

import jwt

from .config import ClientOptions
from .utils import get_logger

logger = get_logger(__name__)

TOKEN_AUDIENCE = "appstoreconnect-v1"
TOKEN_ALGORITHM = "ES256"
# re-mint when less than this many seconds of validity remain
REFRESH_MARGIN_SECONDS = 60


class TokenProvider:
    """Mints and caches the bearer token used by every request"""

    def __init__(self, options: ClientOptions) -> None:
        self.options = options
        self._bearer_token: Optional[str] = None
        self._expires_at: float = 0

    def get_bearer_token(self) -> str:
        now = time.time()
        if self._bearer_token is None or now >= self._expires_at - REFRESH_MARGIN_SECONDS:
            self._bearer_token = self._mint(int(now))
        return self._bearer_token

    def _mint(self, now: int) -> str:
        expires_in = self.options.expires_in or 1200
        payload = {
            "iss": self.options.issuer_id,
            "iat": now,
            "exp": now + expires_in,
            "aud": TOKEN_AUDIENCE,
        }
        headers = {"kid": self.options.api_key, "typ": "JWT"}

        token = jwt.encode(payload, self.options.private_key, algorithm=TOKEN_ALGORITHM, headers=headers)
        self._expires_at = now + expires_in
        logger.debug(f"Minted bearer token for key {self.options.api_key}, valid for {expires_in}s")
        return token
