"""
Strava API v3 access: the OAuth login flow and the athlete activity list.

Strava throttles per application at 200 requests per 15 minutes and 2,000
per day; the client reads the current usage from the X-RateLimit headers
of every response.
"""

import asyncio
import logging
import secrets
import urllib.parse
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional

import httpx

from ..models import Activity
from .base import AuthenticationError, IntegrationError, OAuthCredentials, RateLimitError

logger = logging.getLogger(__name__)

PROVIDER = "strava"
AUTHORIZE_URL = "https://www.strava.com/oauth/authorize"
TOKEN_URL = "https://www.strava.com/oauth/token"
API_URL = "https://www.strava.com/api/v3"

REQUEST_TIMEOUT = 30.0
MAX_PAGE_SIZE = 200
MAX_RETRY_WAIT = 60
# Strava's 15 minute window, used when a 429 carries no Retry-After
DEFAULT_RETRY_AFTER = 900


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return body.get("message", str(body))
    return str(body)


def retry_after_seconds(value: Optional[str]) -> int:
    """Seconds to wait from a Retry-After header, either delta-seconds or an HTTP date."""
    if not value:
        return DEFAULT_RETRY_AFTER
    value = value.strip()
    if value.isdigit():
        return int(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0, int((when - datetime.now(timezone.utc)).total_seconds()))


class StravaOAuthFlow:
    """
    Authorization-code login against Strava.

    Usage:
        oauth = StravaOAuthFlow(client_id, client_secret, redirect_uri)
        url = oauth.get_authorization_url(state=StravaOAuthFlow.generate_state())
        # ...user approves, Strava calls back with ?code=...
        credentials = await oauth.exchange_code(code)
    """

    provider = PROVIDER
    authorize_url = AUTHORIZE_URL
    token_url = TOKEN_URL

    # Private activities count toward the challenge too
    DEFAULT_SCOPE = "read,activity:read_all"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scope: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scope = scope or self.DEFAULT_SCOPE
        self._http_client = http_client

    @staticmethod
    def generate_state() -> str:
        return secrets.token_urlsafe(32)

    def get_authorization_url(self, state: Optional[str] = None) -> str:
        query: Dict[str, str] = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "approval_prompt": "auto",
            "scope": self.scope,
        }
        if state:
            query["state"] = state
        return f"{self.authorize_url}?{urllib.parse.urlencode(query)}"

    async def _token_request(self, grant: Dict[str, str]) -> Dict[str, Any]:
        form = {"client_id": self.client_id, "client_secret": self.client_secret}
        form.update(grant)

        try:
            if self._http_client is not None:
                response = await self._http_client.post(self.token_url, data=form)
            else:
                async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as http:
                    response = await http.post(self.token_url, data=form)
        except httpx.HTTPError as e:
            raise IntegrationError(f"Strava token request failed: {e}", PROVIDER, "network") from e

        if response.status_code != 200:
            grant_type = grant["grant_type"]
            logger.warning(f"Strava rejected {grant_type} grant with HTTP {response.status_code}")
            raise AuthenticationError(_error_message(response), PROVIDER)
        try:
            return response.json()
        except ValueError as e:
            raise IntegrationError("Strava returned a non-JSON token response", PROVIDER, "invalid_response") from e

    async def exchange_code(self, code: str) -> OAuthCredentials:
        """
        Trade the callback ``code`` for tokens and the athlete's identity.

        Raises:
            AuthenticationError: Strava refused the code or sent no athlete
        """
        token = await self._token_request({"grant_type": "authorization_code", "code": code})

        athlete = token.get("athlete") or {}
        if not athlete.get("id"):
            raise AuthenticationError("Token response did not include an athlete", PROVIDER)

        return OAuthCredentials(
            provider=PROVIDER,
            access_token=token["access_token"],
            refresh_token=token.get("refresh_token"),
            expires_at=token.get("expires_at"),
            scope=self.scope,
            user_id=str(athlete["id"]),
            firstname=athlete.get("firstname") or "",
            lastname=athlete.get("lastname") or "",
        )

    async def refresh_token(self, credentials: OAuthCredentials) -> OAuthCredentials:
        """
        New access token for ``credentials``; identity fields carry over.

        Raises:
            AuthenticationError: No refresh token, or Strava refused it
        """
        if not credentials.refresh_token:
            raise AuthenticationError("No refresh token available", PROVIDER)

        token = await self._token_request(
            {"grant_type": "refresh_token", "refresh_token": credentials.refresh_token}
        )
        return credentials.with_tokens(
            token["access_token"],
            token.get("refresh_token"),
            token.get("expires_at"),
        )


@dataclass
class RateLimitUsage:
    """Last reported application quota, as (15 minute, daily) pairs."""
    limit_15min: int = 200
    limit_daily: int = 2000
    used_15min: int = 0
    used_daily: int = 0

    def update(self, headers: httpx.Headers) -> None:
        limits = self._pair(headers.get("X-RateLimit-Limit"))
        if limits:
            self.limit_15min, self.limit_daily = limits
        usage = self._pair(headers.get("X-RateLimit-Usage"))
        if usage:
            self.used_15min, self.used_daily = usage

    @staticmethod
    def _pair(header: Optional[str]) -> Optional[tuple]:
        if not header:
            return None
        parts = header.split(",")
        if len(parts) < 2:
            return None
        return int(parts[0]), int(parts[1])


class StravaClient:
    """
    Reads the authenticated athlete's activities.

    Usage:
        async with StravaClient(credentials) as client:
            activities = await client.get_activities(limit=200)
    """

    provider = PROVIDER
    base_url = API_URL

    def __init__(
        self,
        credentials: OAuthCredentials,
        http_client: Optional[httpx.AsyncClient] = None,
        max_retries: int = 3,
    ):
        if credentials.provider != PROVIDER:
            raise ValueError("Credentials must be for Strava")
        self.credentials = credentials
        self.max_retries = max_retries
        self.usage = RateLimitUsage()
        self._http_client = http_client

    async def __aenter__(self) -> "StravaClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        http, self._http_client = self._http_client, None
        if http is not None and not http.is_closed:
            await http.aclose()

    def _http(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT)
        return self._http_client

    @property
    def rate_limit_remaining_15min(self) -> int:
        return max(0, self.usage.limit_15min - self.usage.used_15min)

    @property
    def rate_limit_remaining_daily(self) -> int:
        return max(0, self.usage.limit_daily - self.usage.used_daily)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise IntegrationError("Strava returned a non-JSON body", PROVIDER, "invalid_response") from e

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET ``path`` and decode the JSON body, waiting out 429s up to
        ``max_retries`` attempts.

        Raises:
            AuthenticationError: HTTP 401
            RateLimitError: Still throttled on the last attempt
            IntegrationError: Transport failure or any other non-200 status
        """
        headers = {"Authorization": self.credentials.authorization_header}

        for attempt in range(1, self.max_retries + 1):
            try:
                response = await self._http().get(f"{self.base_url}{path}", headers=headers, params=params)
            except httpx.HTTPError as e:
                raise IntegrationError(f"Strava request failed: {e}", PROVIDER, "network") from e

            self.usage.update(response.headers)
            status = response.status_code

            if status == 200:
                return self._decode(response)
            if status == 401:
                raise AuthenticationError("Token expired or invalid. Please re-authenticate.", PROVIDER)
            if status != 429:
                raise IntegrationError(f"Strava API error: {_error_message(response)}", PROVIDER, str(status))

            retry_after = retry_after_seconds(response.headers.get("Retry-After"))
            if attempt == self.max_retries:
                raise RateLimitError(
                    "Strava rate limit exceeded. Please wait before retrying.",
                    PROVIDER,
                    retry_after,
                )
            wait = min(retry_after, MAX_RETRY_WAIT)
            logger.warning(f"Strava rate limited (attempt {attempt}), waiting {wait}s")
            await asyncio.sleep(wait)

        raise IntegrationError("Max retries exceeded", PROVIDER)

    async def get_activities(self, limit: int = MAX_PAGE_SIZE) -> List[Activity]:
        """
        Most recent activities, newest first, distance converted to miles.

        ``limit`` above one Strava page (200) is clamped.

        Raises:
            IntegrationError: ``invalid_response`` if the body is not a list
                or an entry cannot be read as an activity
        """
        body = await self._get("/athlete/activities", {"per_page": min(limit, MAX_PAGE_SIZE)})
        if not isinstance(body, list):
            raise IntegrationError(
                "Strava returned an unexpected activities payload", PROVIDER, "invalid_response"
            )

        activities = []
        for entry in body:
            try:
                activities.append(Activity.from_api_response(entry))
            except (KeyError, TypeError, ValueError) as e:
                raise IntegrationError(
                    f"Malformed Strava activity: {e}", PROVIDER, "invalid_response"
                ) from e
        return activities
