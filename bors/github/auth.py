"""
GitHub App authentication utilities.

The App authenticates with a short-lived RS256 JWT and exchanges it for
per-installation access tokens, which are cached until shortly before they
expire.
"""

import time
from datetime import datetime
from typing import Dict, Optional, Tuple

import httpx
import jwt

from bors.core.logging import get_logger
from bors.github.client import GitHubAPIError

logger = get_logger(__name__)

# Refresh installation tokens this many seconds before GitHub expires them
TOKEN_EXPIRY_MARGIN = 120


def create_app_jwt(app_id: int, private_key: str) -> str:
    """Create the JWT (the "ID badge" of the App), valid for ten minutes."""
    now = int(time.time())
    payload = {
        "iat": now - 60,
        "exp": now + (10 * 60),
        "iss": str(app_id),
    }
    return jwt.encode(payload, private_key, algorithm="RS256")


def app_headers(app_id: int, private_key: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {create_app_jwt(app_id, private_key)}",
        "Accept": "application/vnd.github+json",
    }


class InstallationTokenCache:
    """Exchanges App credentials + installation id for cached access tokens."""

    def __init__(
        self,
        app_id: int,
        private_key: str,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
    ):
        self.app_id = app_id
        self.private_key = private_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._tokens: Dict[int, Tuple[str, float]] = {}

    async def get_token(self, installation_id: int) -> str:
        """Return a valid access token for the installation, fetching a new one if needed."""
        cached: Optional[Tuple[str, float]] = self._tokens.get(installation_id)
        if cached and cached[1] - TOKEN_EXPIRY_MARGIN > time.time():
            return cached[0]

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    f"{self.api_url}/app/installations/{installation_id}/access_tokens",
                    headers=app_headers(self.app_id, self.private_key),
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise GitHubAPIError(
                f"Cannot get access token for installation {installation_id}: {e.response.text}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"Cannot reach GitHub: {e}") from e

        token = data["token"]
        expires_at = _parse_expiry(data.get("expires_at"))
        self._tokens[installation_id] = (token, expires_at)
        logger.debug("Refreshed access token for installation %d", installation_id)
        return token


def _parse_expiry(value: Optional[str]) -> float:
    """Parse GitHub's `expires_at` timestamp; assume one hour when missing."""
    if not value:
        return time.time() + 3600
    return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
