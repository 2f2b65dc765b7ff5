"""
SupaAuth Response Resolution

Turns a (status, body) pair into a typed result or a typed error. Shared by
the sync and async clients so both resolve responses identically.

The body text is decoded once. A body that parses as the expected success
shape is returned as success whatever the status code; otherwise the body
is tried as an error envelope, and failing that the raw text becomes the
error message.
"""

import json
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

from .errors import AuthError, SerializationError
from .types import ErrorEnvelope

T = TypeVar("T")

# Exceptions a from_dict parser raises on a shape mismatch
SHAPE_ERRORS = (KeyError, TypeError, ValueError)

_UNPARSED = object()
_NOT_DECODED = object()


class Expect(str, Enum):
    """How an operation's response is resolved."""
    # Parse as the success shape first, regardless of status
    SHAPE = "shape"
    # 2xx means success, the body is ignored
    NO_CONTENT = "no_content"
    # 2xx must parse as the success shape; anything else is an error
    STATUS_FIRST = "status_first"
    # 4xx/5xx is an error, otherwise the final URL is the result
    REDIRECT = "redirect"


def is_success(status: int) -> bool:
    return 200 <= status < 300


def decode_body(text: str) -> Any:
    """Decode JSON once; non-JSON (or too deeply nested) bodies yield a sentinel."""
    if not text:
        return _UNPARSED
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return _UNPARSED


def error_from_body(status: int, text: str, payload: Any = _NOT_DECODED) -> AuthError:
    """Build the AuthError for a rejected request."""
    if payload is _NOT_DECODED:
        payload = decode_body(text)
    if payload is not _UNPARSED:
        try:
            envelope = ErrorEnvelope.from_dict(payload)
        except SHAPE_ERRORS:
            pass
        else:
            return AuthError(status, envelope.message, envelope.error_code)
    return AuthError(status, text)


def resolve_shape(status: int, text: str, parser: Callable[[Any], T]) -> T:
    payload = decode_body(text)
    if payload is not _UNPARSED:
        try:
            return parser(payload)
        except SHAPE_ERRORS:
            pass
    raise error_from_body(status, text, payload)


def resolve_no_content(status: int, text: str) -> None:
    if is_success(status):
        return None
    raise error_from_body(status, text)


def resolve_status_first(status: int, text: str, parser: Callable[[Any], T]) -> T:
    if not is_success(status):
        raise error_from_body(status, text)
    payload = decode_body(text)
    if payload is _UNPARSED:
        raise SerializationError(
            "Response body is not valid JSON", {"status_code": status, "body": text}
        )
    try:
        return parser(payload)
    except SHAPE_ERRORS as e:
        raise SerializationError(
            f"Unexpected response body: {e}", {"status_code": status, "body": text}
        ) from e


def resolve_redirect(status: int, text: str, final_url: str) -> str:
    if status >= 400:
        raise error_from_body(status, text)
    payload = decode_body(text)
    if isinstance(payload, dict) and isinstance(payload.get("url"), str):
        return payload["url"]
    return final_url


def resolve(
    expect: Expect,
    status: int,
    text: str,
    parser: Optional[Callable[[Any], Any]] = None,
    final_url: str = "",
) -> Any:
    """Dispatch to the resolver for ``expect``."""
    if expect is Expect.NO_CONTENT:
        return resolve_no_content(status, text)
    if expect is Expect.REDIRECT:
        return resolve_redirect(status, text, final_url)
    if parser is None:
        raise ValueError(f"{expect.value} resolution requires a parser")
    if expect is Expect.SHAPE:
        return resolve_shape(status, text, parser)
    return resolve_status_first(status, text, parser)
