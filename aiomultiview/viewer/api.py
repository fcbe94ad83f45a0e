"""Client for the collaborator HTTP API (packs and premium verification)."""

from __future__ import annotations

import logging
import urllib.parse
from typing import Any

import orjson
from aiohttp import ClientError, ClientSession, ClientTimeout
from mashumaro.exceptions import InvalidFieldValue, MissingField

from aiomultiview.models.pack import Pack, PackResponse, PremiumStatus

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 10.0


class ViewerApiError(Exception):
    """A request to the collaborator API failed."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        """Initialize with a message and the HTTP status, if any."""
        super().__init__(message)
        self.status = status


class ViewerApiClient:
    """
    Reads packs and premium status from the collaborator API.

    The client never writes anything. It owns its aiohttp ClientSession only
    when none was passed in, and only closes a session it owns.
    """

    _base_url: str
    _session: ClientSession | None
    """aiohttp session used for requests, created lazily if not provided."""
    _owns_session: bool
    _access_token: str | None
    """Bearer token of the signed-in user, None for anonymous requests."""

    def __init__(
        self,
        base_url: str,
        *,
        session: ClientSession | None = None,
        access_token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        """
        Create a client.

        Args:
            base_url: Root URL of the collaborator, e.g. "https://example.com".
            session: Optional aiohttp ClientSession. If None, a session is created
                and managed by this client.
            access_token: Optional bearer token sent with every request.
            timeout: Total request timeout in seconds.
        """
        self._base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None
        self._access_token = access_token
        self._timeout = ClientTimeout(total=timeout)

    async def __aenter__(self) -> ViewerApiClient:
        """Enter the async context."""
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Close the client when leaving the async context."""
        await self.close()

    async def close(self) -> None:
        """Close the aiohttp session if this client created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def fetch_pack(self, pack_id: str) -> Pack:
        """
        Fetch a saved pack.

        Raises:
            ViewerApiError: If the request failed or the payload is malformed.
        """
        # The id is a single path segment
        segment = urllib.parse.quote(pack_id, safe="")
        payload = await self._get_json(f"/api/packs/{segment}")
        try:
            pack = PackResponse.from_dict(payload).pack
        except (MissingField, InvalidFieldValue, TypeError, ValueError) as err:
            raise ViewerApiError(f"Malformed pack payload for {pack_id}: {err}") from err
        logger.debug("Fetched pack %s with %d streams", pack.id, len(pack.pack_streams))
        return pack

    async def verify_premium(self) -> PremiumStatus:
        """
        Ask whether the signed-in user holds a premium subscription.

        Raises:
            ViewerApiError: If the request failed or the payload is malformed.
        """
        payload = await self._get_json("/api/premium/verify")
        try:
            return PremiumStatus.from_dict(payload)
        except (MissingField, InvalidFieldValue, TypeError, ValueError) as err:
            raise ViewerApiError(f"Malformed premium payload: {err}") from err

    async def _get_json(self, path: str) -> dict[str, Any]:
        if self._session is None:
            self._session = ClientSession()
        headers = {}
        if self._access_token is not None:
            headers["Authorization"] = f"Bearer {self._access_token}"
        url = f"{self._base_url}{path}"
        try:
            async with self._session.get(url, headers=headers, timeout=self._timeout) as resp:
                if resp.status >= 400:
                    raise ViewerApiError(
                        f"GET {path} failed with status {resp.status}", status=resp.status
                    )
                payload = await resp.json(loads=orjson.loads)
        except ClientError as err:
            raise ViewerApiError(f"GET {path} failed: {err}") from err
        except ValueError as err:
            raise ViewerApiError(f"GET {path} returned invalid JSON: {err}") from err
        except TimeoutError as err:
            raise ViewerApiError(f"GET {path} timed out") from err
        if not isinstance(payload, dict):
            raise ViewerApiError(f"GET {path} returned {type(payload).__name__}, expected object")
        return payload
