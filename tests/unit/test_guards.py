"""Unit tests for the session and token guards."""

import base64
from typing import Optional

import pytest
from starlette.requests import Request

from authgate.auth.guards import SessionGuard, TokenGuard
from authgate.auth.providers import GenericUser
from authgate.utils.exceptions import ConfigurationError
from authgate.utils.security import hash_token
from tests.conftest import InMemoryUserProvider

pytestmark = pytest.mark.asyncio


def make_request(
    headers: Optional[dict[str, str]] = None,
    query_string: str = "",
    session: Optional[dict] = None,
) -> Request:
    """Build a bare Starlette request."""
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(key.lower().encode(), value.encode()) for key, value in (headers or {}).items()],
        "query_string": query_string.encode(),
    }
    if session is not None:
        scope["session"] = session
    return Request(scope)


class TestSessionGuard:
    """Session guard login state."""

    async def test_guest_without_session_entry(self, memory_provider):
        guard = SessionGuard("web", memory_provider, session={})

        assert await guard.user() is None
        assert await guard.guest() is True
        assert await guard.id() is None

    async def test_login_stores_identifier(self, memory_provider, alice):
        session = {}
        guard = SessionGuard("web", memory_provider, session=session)

        await guard.login(alice)

        assert session[guard.get_name()] == 1
        assert await guard.check() is True
        assert await guard.id() == 1
        assert await guard.user() is alice

    async def test_session_key_names(self, memory_provider):
        guard = SessionGuard("web", memory_provider, session={})

        assert guard.get_name().startswith("auth_web_")
        assert guard.get_recaller_name().startswith("remember_web_")
        assert guard.get_name() != SessionGuard("admin", memory_provider).get_name()

    async def test_user_restored_from_session(self, memory_provider, alice):
        session = {}
        await SessionGuard("web", memory_provider, session=session).login(alice)

        guard = SessionGuard("web", memory_provider, session=session)

        assert await guard.user() is alice

    async def test_user_is_memoized(self, memory_provider, alice):
        session = {}
        await SessionGuard("web", memory_provider, session=session).login(alice)
        guard = SessionGuard("web", memory_provider, session=session)

        await guard.user()
        await guard.user()

        assert memory_provider.lookups == 1

    async def test_attempt_with_valid_credentials(self, memory_provider, alice):
        session = {}
        guard = SessionGuard("web", memory_provider, session=session)

        assert await guard.attempt({"email": "alice@example.com", "password": "secret"}) is True
        assert guard.last_attempted is alice
        assert session[guard.get_name()] == 1

    @pytest.mark.parametrize(
        "credentials",
        [
            {"email": "alice@example.com", "password": "wrong"},
            {"email": "bob@example.com", "password": "secret"},
            {"password": "secret"},
            {},
        ],
    )
    async def test_attempt_with_invalid_credentials(self, memory_provider, credentials):
        session = {}
        guard = SessionGuard("web", memory_provider, session=session)

        assert await guard.attempt(credentials) is False
        assert session == {}
        assert await guard.check() is False

    async def test_validate_does_not_log_in(self, memory_provider):
        session = {}
        guard = SessionGuard("web", memory_provider, session=session)

        assert await guard.validate({"email": "alice@example.com", "password": "secret"}) is True
        assert session == {}
        assert guard.has_user() is False

    async def test_once_authenticates_without_session(self, memory_provider, alice):
        session = {}
        guard = SessionGuard("web", memory_provider, session=session)

        assert await guard.once({"email": "alice@example.com", "password": "secret"}) is True
        assert await guard.user() is alice
        assert session == {}

    async def test_once_using_id(self, memory_provider, alice):
        guard = SessionGuard("web", memory_provider, session={})

        assert await guard.once_using_id(1) is alice
        assert await guard.once_using_id(404) is False

    async def test_login_using_id(self, memory_provider, alice):
        guard = SessionGuard("web", memory_provider, session={})

        assert await guard.login_using_id(1) is alice
        assert await guard.login_using_id(404) is False

    async def test_logout_clears_session_and_forgets_cookie(self, memory_provider, alice):
        session = {}
        guard = SessionGuard("web", memory_provider, session=session)
        await guard.login(alice)

        await guard.logout()

        assert session == {}
        assert await guard.user() is None
        assert await guard.id() is None
        assert guard.queued_cookies == {guard.get_recaller_name(): None}

    async def test_login_with_remember_queues_cookie(self, memory_provider, alice):
        guard = SessionGuard("web", memory_provider, session={})

        await guard.login(alice, remember=True)

        token = alice.get_remember_token()
        assert len(token) == 60
        assert memory_provider.updated_tokens == [(1, token)]
        assert guard.queued_cookies == {guard.get_recaller_name(): f"1|{token}"}

    async def test_existing_remember_token_is_kept(self, memory_provider, alice):
        alice.set_remember_token("existing-token")
        guard = SessionGuard("web", memory_provider, session={})

        await guard.login(alice, remember=True)

        assert alice.get_remember_token() == "existing-token"
        assert memory_provider.updated_tokens == []

    async def test_user_from_remember_cookie(self, memory_provider, alice):
        alice.set_remember_token("remember-me")
        session = {}
        guard = SessionGuard("web", memory_provider, session=session)
        guard.set_request(make_request({"Cookie": f"{guard.get_recaller_name()}=1|remember-me"}))

        assert await guard.user() is alice
        assert guard.via_remember is True
        assert session[guard.get_name()] == 1

    @pytest.mark.parametrize("cookie", ["1|wrong-token", "garbage", "1|", "|remember-me"])
    async def test_invalid_remember_cookie(self, memory_provider, alice, cookie):
        alice.set_remember_token("remember-me")
        guard = SessionGuard("web", memory_provider, session={})
        guard.set_request(make_request({"Cookie": f"{guard.get_recaller_name()}={cookie}"}))

        assert await guard.user() is None
        assert guard.via_remember is False

    async def test_login_without_session_store(self, memory_provider, alice):
        guard = SessionGuard("web", memory_provider)

        with pytest.raises(ConfigurationError):
            await guard.login(alice)

    async def test_request_session_is_used(self, memory_provider, alice):
        session = {}
        guard = SessionGuard("web", memory_provider, request=make_request(session=session))

        await guard.login(alice)

        assert session[guard.get_name()] == 1


class TestGuardForRequest:
    """Request bound copies of memoized guards."""

    async def test_copy_has_fresh_state(self, memory_provider, alice):
        template = SessionGuard("web", memory_provider, session={})
        template.set_user(alice)

        bound = template.for_request(make_request(session={}))

        assert bound is not template
        assert bound.has_user() is False
        assert template.has_user() is True

    async def test_login_on_copy_does_not_leak(self, memory_provider, alice):
        template = SessionGuard("web", memory_provider)
        first = template.for_request(make_request(session={}))
        second = template.for_request(make_request(session={}))

        await first.login(alice, remember=True)

        assert await first.check() is True
        assert await second.check() is False
        assert template.has_user() is False
        assert second.queued_cookies == {}

    async def test_copy_keeps_provider_and_name(self, memory_provider):
        template = TokenGuard(memory_provider, name="api")

        bound = template.for_request(make_request())

        assert bound.get_provider() is memory_provider
        assert bound.name == "api"
        assert bound.request is not None


class TestTokenGuard:
    """API token guard."""

    async def test_bearer_token(self, memory_provider, alice):
        guard = TokenGuard(memory_provider).for_request(make_request({"Authorization": "Bearer alice-token"}))

        assert await guard.user() is alice
        assert await guard.id() == 1

    async def test_query_parameter(self, memory_provider, alice):
        guard = TokenGuard(memory_provider).for_request(make_request(query_string="api_token=alice-token"))

        assert await guard.user() is alice

    async def test_query_parameter_takes_precedence(self, memory_provider, alice):
        request = make_request({"Authorization": "Bearer wrong"}, query_string="api_token=alice-token")
        guard = TokenGuard(memory_provider).for_request(request)

        assert await guard.user() is alice

    async def test_basic_auth_password(self, memory_provider, alice):
        credentials = base64.b64encode(b"alice@example.com:alice-token").decode()
        guard = TokenGuard(memory_provider).for_request(make_request({"Authorization": f"Basic {credentials}"}))

        assert await guard.user() is alice

    async def test_malformed_basic_auth(self, memory_provider):
        guard = TokenGuard(memory_provider).for_request(make_request({"Authorization": "Basic !!!"}))

        assert await guard.user() is None

    async def test_custom_keys(self, memory_provider, alice):
        guard = TokenGuard(memory_provider, input_key="key", storage_key="api_token")

        assert await guard.for_request(make_request(query_string="key=alice-token")).user() is alice
        assert await guard.for_request(make_request(query_string="api_token=alice-token")).user() is None

    async def test_hashed_tokens(self, hasher):
        user = GenericUser({"id": 5, "api_token": hash_token("plain-token")})
        provider = InMemoryUserProvider(hasher, [user])
        guard = TokenGuard(provider, hash=True)

        assert await guard.for_request(make_request({"Authorization": "Bearer plain-token"})).user() is user
        assert await guard.for_request(make_request({"Authorization": f"Bearer {hash_token('plain-token')}"})).user() is None

    async def test_unknown_token(self, memory_provider):
        guard = TokenGuard(memory_provider).for_request(make_request({"Authorization": "Bearer nope"}))

        assert await guard.user() is None
        assert await guard.guest() is True

    async def test_no_request(self, memory_provider):
        guard = TokenGuard(memory_provider)

        assert await guard.user() is None
        assert memory_provider.lookups == 0

    async def test_validate(self, memory_provider):
        guard = TokenGuard(memory_provider)

        assert await guard.validate({"api_token": "alice-token"}) is True
        assert await guard.validate({"api_token": "nope"}) is False
        assert await guard.validate({}) is False
