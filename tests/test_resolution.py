"""
Response Resolution Tests

Exercises the resolvers directly, without HTTP.
"""

import json

import pytest

from supaauth.errors import AuthError, SerializationError
from supaauth.resolution import (
    Expect,
    decode_body,
    error_from_body,
    is_success,
    resolve,
    resolve_no_content,
    resolve_redirect,
    resolve_shape,
    resolve_status_first,
)
from supaauth.types import AuthServerHealth, OTPResponse


HEALTH = {"version": "v2.150.0", "name": "GoTrue", "description": "auth"}


class CountingParser:
    """Parser that records every payload it is handed."""

    def __init__(self) -> None:
        self.payloads = []

    def __call__(self, payload):
        self.payloads.append(payload)
        return AuthServerHealth.from_dict(payload)


class TestHelpers:
    """Tests for helper functions."""

    @pytest.mark.parametrize("status", [200, 201, 204, 299])
    def test_success_statuses(self, status: int):
        assert is_success(status)

    @pytest.mark.parametrize("status", [100, 199, 300, 302, 400, 500])
    def test_non_success_statuses(self, status: int):
        assert not is_success(status)

    def test_decode_body(self):
        assert decode_body('{"a": 1}') == {"a": 1}
        assert decode_body("[1, 2]") == [1, 2]

    def test_decode_body_unparsed(self):
        assert decode_body("") is decode_body("<html>")

    def test_error_from_message(self):
        error = error_from_body(400, json.dumps({"message": "bad request"}))
        assert error.status_code == 400
        assert error.message == "bad request"
        assert error.error_code is None

    def test_error_from_msg_alias(self):
        body = json.dumps({"code": 422, "error_code": "weak_password", "msg": "Password is too weak"})
        error = error_from_body(422, body)
        assert error.message == "Password is too weak"
        assert error.error_code == "weak_password"
        assert error.code == "weak_password"

    def test_error_string_code(self):
        error = error_from_body(401, json.dumps({"code": "bad_jwt", "message": "invalid JWT"}))
        assert error.error_code == "bad_jwt"

    def test_non_string_message_is_raw(self):
        body = json.dumps({"message": 42})
        error = error_from_body(500, body)
        assert error.message == body

    def test_array_body_is_raw(self):
        error = error_from_body(500, '["boom"]')
        assert error.message == '["boom"]'

    def test_empty_body_is_raw(self):
        error = error_from_body(503, "")
        assert error.status_code == 503
        assert error.message == ""


class TestResolveShape:
    """Tests for success-shape-first resolution."""

    def test_success(self):
        health = resolve_shape(200, json.dumps(HEALTH), AuthServerHealth.from_dict)
        assert health == AuthServerHealth(**HEALTH)

    @pytest.mark.parametrize("status", [302, 400, 401, 404, 500, 503])
    def test_success_shape_wins_for_any_status(self, status: int):
        health = resolve_shape(status, json.dumps(HEALTH), AuthServerHealth.from_dict)
        assert health.name == "GoTrue"

    def test_structured_error(self):
        with pytest.raises(AuthError) as exc_info:
            resolve_shape(400, json.dumps({"message": "nope"}), AuthServerHealth.from_dict)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "nope"

    def test_unstructured_error(self):
        with pytest.raises(AuthError) as exc_info:
            resolve_shape(502, "Bad Gateway", AuthServerHealth.from_dict)
        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Bad Gateway"

    def test_unexpected_shape_with_2xx(self):
        # Neither success nor error shape: reported with the status received
        with pytest.raises(AuthError) as exc_info:
            resolve_shape(200, '{"unexpected": true}', AuthServerHealth.from_dict)
        assert exc_info.value.status_code == 200
        assert exc_info.value.message == '{"unexpected": true}'

    def test_wrong_field_type_is_not_success(self):
        body = json.dumps(dict(HEALTH, version=2))
        with pytest.raises(AuthError):
            resolve_shape(200, body, AuthServerHealth.from_dict)

    def test_body_decoded_once(self):
        parser = CountingParser()
        resolve_shape(200, json.dumps(HEALTH), parser)
        assert parser.payloads == [HEALTH]


class TestResolveNoContent:
    """Tests for body-less operations."""

    @pytest.mark.parametrize("body", ["", "{}", "not json", '{"message": "ignored"}'])
    def test_success_ignores_body(self, body: str):
        assert resolve_no_content(200, body) is None

    def test_structured_error(self):
        with pytest.raises(AuthError) as exc_info:
            resolve_no_content(400, json.dumps({"message": "Unable to validate email address"}))
        assert exc_info.value.message == "Unable to validate email address"

    def test_unstructured_error(self):
        with pytest.raises(AuthError) as exc_info:
            resolve_no_content(500, "Internal Server Error")
        assert exc_info.value.message == "Internal Server Error"


class TestResolveStatusFirst:
    """Tests for status-first resolution."""

    def test_success(self):
        result = resolve_status_first(200, '{"message_id": "SM1"}', OTPResponse.from_dict)
        assert result == OTPResponse(message_id="SM1")

    def test_success_shape_does_not_win(self):
        with pytest.raises(AuthError) as exc_info:
            resolve_status_first(500, '{"message_id": "SM1"}', OTPResponse.from_dict)
        assert exc_info.value.status_code == 500
        assert exc_info.value.message == '{"message_id": "SM1"}'

    def test_structured_error(self):
        with pytest.raises(AuthError) as exc_info:
            resolve_status_first(429, '{"message": "slow down"}', OTPResponse.from_dict)
        assert exc_info.value.message == "slow down"

    def test_not_json(self):
        with pytest.raises(SerializationError) as exc_info:
            resolve_status_first(200, "ok", OTPResponse.from_dict)
        assert exc_info.value.details["body"] == "ok"

    def test_wrong_shape(self):
        with pytest.raises(SerializationError):
            resolve_status_first(200, '{"message_id": 5}', OTPResponse.from_dict)


class TestResolveRedirect:
    """Tests for redirect resolution."""

    def test_final_url(self):
        url = resolve_redirect(200, "<html></html>", "https://idp.example.com/login")
        assert url == "https://idp.example.com/login"

    def test_unfollowed_redirect_status(self):
        url = resolve_redirect(303, "", "https://idp.example.com/login")
        assert url == "https://idp.example.com/login"

    def test_json_url(self):
        url = resolve_redirect(200, '{"url": "https://idp.example.com/sso"}', "https://project.supabase.co/auth/v1/sso")
        assert url == "https://idp.example.com/sso"

    def test_error(self):
        with pytest.raises(AuthError) as exc_info:
            resolve_redirect(400, '{"message": "Domain not found"}', "")
        assert exc_info.value.message == "Domain not found"


class TestResolveDispatch:
    """Tests for resolve()."""

    def test_dispatch(self):
        assert resolve(Expect.SHAPE, 200, json.dumps(HEALTH), AuthServerHealth.from_dict).version == "v2.150.0"
        assert resolve(Expect.NO_CONTENT, 204, "") is None
        assert resolve(Expect.STATUS_FIRST, 200, "{}", OTPResponse.from_dict) == OTPResponse()
        assert resolve(Expect.REDIRECT, 200, "", None, "https://idp.example.com") == "https://idp.example.com"

    @pytest.mark.parametrize("expect", [Expect.SHAPE, Expect.STATUS_FIRST])
    def test_parser_required(self, expect: Expect):
        with pytest.raises(ValueError):
            resolve(expect, 200, "{}")


class TestDeeplyNestedBody:
    """Bodies nested past the JSON decoder's recursion limit."""

    NESTED = "[" * 100000 + "]" * 100000

    def test_decode_body_unparsed(self):
        assert decode_body(self.NESTED) is decode_body("")

    def test_shape_falls_back_to_raw_text(self):
        with pytest.raises(AuthError) as exc_info:
            resolve_shape(500, self.NESTED, AuthServerHealth.from_dict)
        assert exc_info.value.status_code == 500
        assert exc_info.value.message == self.NESTED

    def test_no_content_falls_back_to_raw_text(self):
        with pytest.raises(AuthError) as exc_info:
            resolve_no_content(502, self.NESTED)
        assert exc_info.value.message == self.NESTED
