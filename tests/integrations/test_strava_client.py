"""Tests for the Strava integration."""

import time
import urllib.parse
from datetime import date, datetime, timedelta, timezone
from email.utils import format_datetime

import httpx
import pytest

from run_challenge.integrations import (
    AuthenticationError,
    IntegrationError,
    OAuthCredentials,
    RateLimitError,
    RateLimitUsage,
    StravaClient,
    StravaOAuthFlow,
)
from run_challenge.integrations.strava import DEFAULT_RETRY_AFTER, retry_after_seconds

from conftest import strava_payload


def credentials(**kwargs) -> OAuthCredentials:
    return OAuthCredentials(provider="strava", access_token="token-123", refresh_token="refresh-123", **kwargs)


def client_with(handler, **kwargs) -> StravaClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return StravaClient(credentials(), http_client=http, **kwargs)


class TestOAuthCredentials:
    """Tests for token expiry checks."""

    def test_no_expiry_never_expired(self):
        assert not credentials().is_expired

    def test_expiry_buffer(self):
        soon = credentials(expires_at=int(time.time()) + 120)
        assert soon.is_expired
        assert soon.needs_refresh

    def test_valid(self):
        assert not credentials(expires_at=int(time.time()) + 3600).needs_refresh

    def test_no_refresh_token(self):
        creds = OAuthCredentials(provider="strava", access_token="x", expires_at=0)
        assert creds.is_expired
        assert not creds.needs_refresh

    def test_with_tokens_keeps_refresh_token(self):
        updated = credentials(user_id="987").with_tokens("a2", None, 99)
        assert updated.access_token == "a2"
        assert updated.refresh_token == "refresh-123"
        assert updated.expires_at == 99
        assert updated.user_id == "987"

    def test_authorization_header(self):
        assert credentials().authorization_header == "Bearer token-123"


class TestRateLimitUsage:
    def test_parses_headers(self):
        usage = RateLimitUsage()
        usage.update(httpx.Headers({"X-RateLimit-Limit": "100,1000", "X-RateLimit-Usage": "5,50"}))
        assert (usage.limit_15min, usage.limit_daily) == (100, 1000)
        assert (usage.used_15min, usage.used_daily) == (5, 50)

    def test_ignores_missing_or_short_headers(self):
        usage = RateLimitUsage()
        usage.update(httpx.Headers({"X-RateLimit-Usage": "5"}))
        assert usage.used_15min == 0
        assert usage.limit_daily == 2000


class TestStravaOAuthFlow:
    """Tests for the Strava OAuth flow."""

    def test_authorization_url(self):
        flow = StravaOAuthFlow("12345", "secret", "http://localhost:3000/api/v1/auth/strava/callback")

        url = flow.get_authorization_url(state="abc")

        parsed = urllib.parse.urlparse(url)
        params = urllib.parse.parse_qs(parsed.query)
        assert url.startswith("https://www.strava.com/oauth/authorize?")
        assert params["client_id"] == ["12345"]
        assert params["response_type"] == ["code"]
        assert params["scope"] == ["read,activity:read_all"]
        assert params["state"] == ["abc"]

    def test_generate_state_is_random(self):
        assert StravaOAuthFlow.generate_state() != StravaOAuthFlow.generate_state()

    @pytest.mark.asyncio
    async def test_exchange_code(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["form"] = urllib.parse.parse_qs(request.content.decode())
            return httpx.Response(200, json={
                "access_token": "new-access",
                "refresh_token": "new-refresh",
                "expires_at": 1767225600,
                "athlete": {"id": 987, "firstname": "Ada", "lastname": "Zhou"},
            })

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            flow = StravaOAuthFlow("12345", "secret", "http://localhost/cb", http_client=http)
            creds = await flow.exchange_code("the-code")

        assert seen["form"]["grant_type"] == ["authorization_code"]
        assert seen["form"]["code"] == ["the-code"]
        assert creds.user_id == "987"
        assert creds.firstname == "Ada"
        assert creds.access_token == "new-access"
        assert creds.expires_at == 1767225600

    @pytest.mark.asyncio
    async def test_exchange_code_rejected(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"message": "Bad Request"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            flow = StravaOAuthFlow("12345", "secret", "http://localhost/cb", http_client=http)
            with pytest.raises(AuthenticationError):
                await flow.exchange_code("bad-code")

    @pytest.mark.asyncio
    async def test_exchange_code_without_athlete(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"access_token": "a", "refresh_token": "r", "expires_at": 1})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            flow = StravaOAuthFlow("12345", "secret", "http://localhost/cb", http_client=http)
            with pytest.raises(AuthenticationError):
                await flow.exchange_code("code")

    @pytest.mark.asyncio
    async def test_refresh_token_keeps_identity(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"access_token": "a2", "refresh_token": "r2", "expires_at": 99})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            flow = StravaOAuthFlow("12345", "secret", "http://localhost/cb", http_client=http)
            refreshed = await flow.refresh_token(credentials(user_id="987"))

        assert refreshed.access_token == "a2"
        assert refreshed.refresh_token == "r2"
        assert refreshed.user_id == "987"

    @pytest.mark.asyncio
    async def test_refresh_without_refresh_token(self):
        flow = StravaOAuthFlow("12345", "secret", "http://localhost/cb")
        with pytest.raises(AuthenticationError):
            await flow.refresh_token(OAuthCredentials(provider="strava", access_token="x"))


class TestStravaClient:
    """Tests for the activity listing client."""

    def test_rejects_other_provider(self):
        with pytest.raises(ValueError):
            StravaClient(OAuthCredentials(provider="other", access_token="x"))

    @pytest.mark.asyncio
    async def test_get_activities(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["per_page"] = request.url.params["per_page"]
            return httpx.Response(
                200,
                json=[
                    strava_payload(date(2026, 3, 7), 3.5, activity_id=2),
                    strava_payload(date(2026, 3, 6), 4.0, "Ride", activity_id=1),
                ],
                headers={"X-RateLimit-Limit": "200,2000", "X-RateLimit-Usage": "10,100"},
            )

        async with client_with(handler) as client:
            activities = await client.get_activities(limit=500)
            assert client.rate_limit_remaining_15min == 190
            assert client.rate_limit_remaining_daily == 1900

        assert seen["auth"] == "Bearer token-123"
        assert seen["per_page"] == "200"
        assert [a.id for a in activities] == [2, 1]
        assert activities[0].distance_miles == pytest.approx(3.5)
        assert activities[0].start_day == date(2026, 3, 7)
        assert activities[1].type == "Ride"

    @pytest.mark.asyncio
    async def test_non_list_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"message": "Authorization Error"})

        async with client_with(handler) as client:
            with pytest.raises(IntegrationError) as exc_info:
                await client.get_activities()

        assert exc_info.value.code == "invalid_response"

    @pytest.mark.asyncio
    async def test_malformed_entry(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"id": 1, "type": "Run"}])

        async with client_with(handler) as client:
            with pytest.raises(IntegrationError):
                await client.get_activities()

    @pytest.mark.asyncio
    async def test_unauthorized(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"message": "Authorization Error"})

        async with client_with(handler) as client:
            with pytest.raises(AuthenticationError):
                await client.get_activities()

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, headers={"Retry-After": "30"}, json={"message": "Rate Limit Exceeded"})

        async with client_with(handler, max_retries=1) as client:
            with pytest.raises(RateLimitError) as exc_info:
                await client.get_activities()

        assert exc_info.value.retry_after == 30

    @pytest.mark.asyncio
    async def test_server_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="upstream failure")

        async with client_with(handler) as client:
            with pytest.raises(IntegrationError) as exc_info:
                await client.get_activities()

        assert exc_info.value.code == "500"

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with client_with(handler) as client:
            with pytest.raises(IntegrationError) as exc_info:
                await client.get_activities()

        assert exc_info.value.code == "network"

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>")

        async with client_with(handler) as client:
            with pytest.raises(IntegrationError) as exc_info:
                await client.get_activities()

        assert exc_info.value.code == "invalid_response"

    @pytest.mark.asyncio
    async def test_rate_limited_with_http_date(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, headers={"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})

        async with client_with(handler, max_retries=1) as client:
            with pytest.raises(RateLimitError) as exc_info:
                await client.get_activities()

        assert exc_info.value.retry_after == 0


class TestRetryAfterSeconds:
    def test_delta_seconds(self):
        assert retry_after_seconds("30") == 30

    def test_missing_uses_default(self):
        assert retry_after_seconds(None) == DEFAULT_RETRY_AFTER

    def test_unparseable_uses_default(self):
        assert retry_after_seconds("soon") == DEFAULT_RETRY_AFTER

    def test_http_date_in_future(self):
        future = datetime.now(timezone.utc) + timedelta(minutes=5)
        assert 250 <= retry_after_seconds(format_datetime(future, usegmt=True)) <= 300
