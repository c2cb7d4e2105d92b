"""Tests for bearer token refresh."""

import threading
import time
from unittest.mock import MagicMock

import pytest
import requests

from conftest import make_response
from cosclient.auth.token_manager import APIKEY_GRANT_TYPE, TokenManager
from cosclient.errors import AuthExchangeFailed


def _token_body(clock, token="tok-1", ttl=3600):
    return {"access_token": token, "expiration": int(clock.now + ttl), "token_type": "Bearer"}


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def manager(session, clock):
    return TokenManager(
        api_key="secret-key",
        iam_endpoint="https://iam.example.test/identity/token",
        session=session,
        refresh_lookahead=300,
        clock=clock,
    )


class TestTokenManager:
    def test_first_use_exchanges_api_key(self, manager, session, clock):
        session.post.return_value = make_response(json_body=_token_body(clock))

        assert manager.ensure_valid_token() == "tok-1"

        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == "https://iam.example.test/identity/token"
        assert kwargs["data"] == {
            "apikey": "secret-key",
            "response_type": "cloud_iam",
            "grant_type": APIKEY_GRANT_TYPE,
        }
        assert kwargs["headers"]["Accept"] == "application/json"
        assert manager.expires_at == int(clock.now + 3600)

    def test_fresh_token_makes_no_network_call(self, manager, session, clock):
        session.post.return_value = make_response(json_body=_token_body(clock))
        manager.ensure_valid_token()
        clock.advance(3600 - 301)

        manager.ensure_valid_token()

        assert session.post.call_count == 1

    def test_token_inside_lookahead_is_refreshed(self, manager, session, clock):
        session.post.return_value = make_response(json_body=_token_body(clock))
        manager.ensure_valid_token()
        clock.advance(3600 - 300)
        session.post.return_value = make_response(json_body=_token_body(clock, token="tok-2"))

        assert manager.ensure_valid_token() == "tok-2"
        assert session.post.call_count == 2

    def test_concurrent_callers_share_one_exchange(self, manager, session, clock):
        def slow_exchange(*args, **kwargs):
            time.sleep(0.05)
            return make_response(json_body=_token_body(clock))

        session.post.side_effect = slow_exchange
        barrier = threading.Barrier(8)
        tokens = []

        def call():
            barrier.wait()
            tokens.append(manager.ensure_valid_token())

        threads = [threading.Thread(target=call) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert session.post.call_count == 1
        assert tokens == ["tok-1"] * 8

    def test_service_error_message_keeps_old_token(self, manager, session, clock):
        session.post.return_value = make_response(json_body=_token_body(clock))
        manager.ensure_valid_token()
        clock.advance(3600)
        session.post.return_value = make_response(
            status_code=400,
            reason="Bad Request",
            json_body={"errorCode": "BXNIM0415E", "errorMessage": "Provided API key could not be found"},
        )

        with pytest.raises(AuthExchangeFailed, match="could not be found"):
            manager.ensure_valid_token()
        assert manager.token == "tok-1"

    def test_network_error_is_wrapped(self, manager, session):
        session.post.side_effect = requests.exceptions.ConnectionError("boom")

        with pytest.raises(AuthExchangeFailed, match="boom"):
            manager.ensure_valid_token()
        assert manager.token == ""

    def test_malformed_body_is_rejected(self, manager, session):
        session.post.return_value = make_response(content=b"<html>gateway timeout</html>")

        with pytest.raises(AuthExchangeFailed, match="Error parsing IAM token response"):
            manager.ensure_valid_token()

    def test_missing_fields_are_rejected(self, manager, session):
        session.post.return_value = make_response(json_body={"token_type": "Bearer"})

        with pytest.raises(AuthExchangeFailed, match="missing access_token"):
            manager.ensure_valid_token()

    def test_lock_is_released_after_failure(self, manager, session, clock):
        session.post.side_effect = [
            requests.exceptions.Timeout("slow"),
            make_response(json_body=_token_body(clock)),
        ]

        with pytest.raises(AuthExchangeFailed):
            manager.ensure_valid_token()
        assert manager.ensure_valid_token() == "tok-1"

    def test_invalidate_forces_refresh(self, manager, session, clock):
        session.post.return_value = make_response(json_body=_token_body(clock))
        manager.ensure_valid_token()

        manager.invalidate()
        manager.ensure_valid_token()

        assert session.post.call_count == 2
