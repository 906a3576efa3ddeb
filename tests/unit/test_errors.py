"""Tests for error decoding into ErrorKind."""

import httpx

from sunyield.client.errors import (
    GENERIC_FAILURE_MESSAGE,
    ErrorKind,
    decode_error,
    error_from_payload,
    kind_from_code,
    kind_from_message,
    kind_from_status,
)


def _response(status: int, **kwargs) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", "http://test/x"), **kwargs)


class TestKindFromCode:
    def test_known_code(self):
        assert kind_from_code("duplicate_subscription") == ErrorKind.DUPLICATE_SUBSCRIPTION

    def test_code_is_case_insensitive(self):
        assert kind_from_code("KYC_REQUIRED") == ErrorKind.KYC_REQUIRED

    def test_unknown_code(self):
        assert kind_from_code("teapot") is None
        assert kind_from_code(None) is None


class TestKindFromMessage:
    def test_legacy_phrases(self):
        for message in (
            "You have already subscribed to this project",
            "User already have an active subscription for project",
            "ALREADY SUBSCRIBED",
        ):
            assert kind_from_message(message) == ErrorKind.DUPLICATE_SUBSCRIPTION

    def test_other_text(self):
        assert kind_from_message("Insufficient wallet balance") is None


class TestKindFromStatus:
    def test_mapping(self):
        assert kind_from_status(401) == ErrorKind.AUTHENTICATION
        assert kind_from_status(404) == ErrorKind.NOT_FOUND
        assert kind_from_status(422) == ErrorKind.VALIDATION
        assert kind_from_status(400) == ErrorKind.BUSINESS_RULE
        assert kind_from_status(409) == ErrorKind.BUSINESS_RULE
        assert kind_from_status(503) == ErrorKind.UNEXPECTED


class TestDecodeError:
    def test_structured_body(self):
        error = decode_error(
            _response(
                400,
                json={"success": False, "code": "insufficient_balance", "message": "Not enough"},
            )
        )
        assert error.kind == ErrorKind.INSUFFICIENT_BALANCE
        assert error.message == "Not enough"
        assert error.status_code == 400

    def test_code_wins_over_message(self):
        error = decode_error(
            _response(400, json={"code": "validation", "message": "already subscribed"})
        )
        assert error.kind == ErrorKind.VALIDATION

    def test_plain_text_legacy_duplicate(self):
        error = decode_error(_response(400, text="You have already subscribed to this project"))
        assert error.kind == ErrorKind.DUPLICATE_SUBSCRIPTION
        assert error.message == "You have already subscribed to this project"

    def test_detail_key(self):
        error = decode_error(_response(404, json={"detail": "Project not found"}))
        assert error.kind == ErrorKind.NOT_FOUND
        assert error.message == "Project not found"

    def test_nested_detail(self):
        error = decode_error(
            _response(400, json={"detail": {"code": "kyc_required", "message": "KYC first"}})
        )
        assert error.kind == ErrorKind.KYC_REQUIRED
        assert error.message == "KYC first"

    def test_empty_body(self):
        error = decode_error(_response(500))
        assert error.kind == ErrorKind.UNEXPECTED
        assert error.message == GENERIC_FAILURE_MESSAGE


class TestErrorFromPayload:
    def test_success_false_body(self):
        error = error_from_payload(
            {"success": False, "message": "Insufficient credits. Available: ₹10.00"}, 200
        )
        assert error.kind == ErrorKind.BUSINESS_RULE
        assert error.message.startswith("Insufficient credits")
