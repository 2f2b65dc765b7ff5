"""
SupaAuth Request Shaping

One builder per API operation. Each returns an ``Operation`` describing the
HTTP method, path under ``/auth/v1``, query, JSON body, whether a bearer
token is sent, how the response is resolved and what happens to the cached
session. The clients only execute these records.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx

from .errors import HeaderError, SerializationError, UrlParseError
from .resolution import Expect
from .types import (
    AuthServerHealth,
    AuthServerSettings,
    EmailSignUpResult,
    IdTokenCredentials,
    LoginAnonymouslyOptions,
    LoginEmailOtpParams,
    LoginWithOAuthOptions,
    LoginWithSSO,
    LogoutScope,
    OAuthResponse,
    OTPResponse,
    Provider,
    ResendParams,
    DesktopResendParams,
    ResetPasswordOptions,
    Session,
    SignUpWithPasswordOptions,
    UpdatedUser,
    User,
    VerifyOtpParams,
)


logger = logging.getLogger("supaauth")

AUTH_V1 = "/auth/v1"

# Visible ASCII plus space and tab
_HEADER_VALUE_RE = re.compile(r"^[\t\x20-\x7e]*$")

# Keys set by login_with_oauth itself; extra query params cannot repeat them
RESERVED_OAUTH_PARAMS = ("provider", "email_redirect_to", "scopes")


class SessionEffect(str, Enum):
    NONE = "none"
    STORE = "store"
    CLEAR = "clear"


@dataclass
class Operation:
    """A single request/response exchange with the auth API."""

    name: str
    method: str
    path: str
    expect: Expect
    parser: Optional[Callable[[Any], Any]] = None
    params: List[Tuple[str, str]] = field(default_factory=list)
    body: Optional[Dict[str, Any]] = None
    bearer_token: Optional[str] = None
    session_effect: SessionEffect = SessionEffect.NONE
    follow_redirects: bool = False

    def url(self, base_url: str) -> str:
        return f"{base_url}{AUTH_V1}/{self.path}"

    def encode_body(self) -> Optional[bytes]:
        """Serialize the JSON body, or None for body-less requests."""
        if self.body is None:
            return None
        try:
            return json.dumps(self.body).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(
                f"Cannot encode {self.name} payload as JSON: {e}",
                {"operation": self.name},
            ) from e

    def headers(self, api_key: str, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Build and validate request headers before anything is sent."""
        headers: Dict[str, str] = dict(extra or {})
        headers["apikey"] = api_key
        if self.body is not None:
            headers["Content-Type"] = "application/json"
        if self.bearer_token is not None:
            headers["Authorization"] = f"Bearer {self.bearer_token}"

        for name, value in headers.items():
            if not isinstance(value, str) or not _HEADER_VALUE_RE.match(value):
                raise HeaderError(name)
        return headers


def session_of(result: Any) -> Optional[Session]:
    """The session carried by an operation result, if any."""
    if isinstance(result, Session):
        return result
    if isinstance(result, EmailSignUpResult):
        return result.session
    return None


def _query(*pairs: Tuple[str, Optional[str]]) -> List[Tuple[str, str]]:
    # Empty values are left off the query string
    return [(k, v) for k, v in pairs if v]


# =============================================================================
# Sign in / sign up
# =============================================================================

def login_with_email(email: str, password: str) -> Operation:
    return Operation(
        name="login_with_email",
        method="POST",
        path="token",
        params=[("grant_type", "password")],
        body={"email": email, "password": password},
        expect=Expect.SHAPE,
        parser=Session.from_dict,
        session_effect=SessionEffect.STORE,
    )


def login_with_phone(phone: str, password: str) -> Operation:
    return Operation(
        name="login_with_phone",
        method="POST",
        path="token",
        params=[("grant_type", "password")],
        body={"phone": phone, "password": password},
        expect=Expect.SHAPE,
        parser=Session.from_dict,
        session_effect=SessionEffect.STORE,
    )


def login_with_id_token(credentials: IdTokenCredentials) -> Operation:
    return Operation(
        name="login_with_id_token",
        method="POST",
        path="token",
        params=[("grant_type", "id_token")],
        body=credentials.to_dict(),
        expect=Expect.SHAPE,
        parser=Session.from_dict,
        session_effect=SessionEffect.STORE,
    )


def login_anonymously(options: Optional[LoginAnonymouslyOptions] = None) -> Operation:
    return Operation(
        name="login_anonymously",
        method="POST",
        path="signup",
        body=options.to_dict() if options else {},
        expect=Expect.SHAPE,
        parser=Session.from_dict,
        session_effect=SessionEffect.STORE,
    )


def sign_up_with_email_and_password(
    email: str,
    password: str,
    options: Optional[SignUpWithPasswordOptions] = None,
) -> Operation:
    body: Dict[str, Any] = {"email": email, "password": password}
    redirect_to = None
    if options is not None:
        body.update(options.to_dict())
        redirect_to = options.email_redirect_to
    return Operation(
        name="sign_up_with_email_and_password",
        method="POST",
        path="signup",
        params=_query(("redirect_to", redirect_to)),
        body=body,
        expect=Expect.SHAPE,
        parser=EmailSignUpResult.from_dict,
        session_effect=SessionEffect.STORE,
    )


def sign_up_with_phone_and_password(
    phone: str,
    password: str,
    options: Optional[SignUpWithPasswordOptions] = None,
) -> Operation:
    body: Dict[str, Any] = {"phone": phone, "password": password}
    redirect_to = None
    if options is not None:
        body.update(options.to_dict())
        redirect_to = options.email_redirect_to
    return Operation(
        name="sign_up_with_phone_and_password",
        method="POST",
        path="signup",
        params=_query(("email_redirect_to", redirect_to)),
        body=body,
        expect=Expect.SHAPE,
        parser=Session.from_dict,
        session_effect=SessionEffect.STORE,
    )


def exchange_token_for_session(refresh_token: str) -> Operation:
    return Operation(
        name="exchange_token_for_session",
        method="POST",
        path="token",
        params=[("grant_type", "refresh_token")],
        body={"refresh_token": refresh_token},
        expect=Expect.SHAPE,
        parser=Session.from_dict,
        session_effect=SessionEffect.STORE,
    )


def logout(bearer_token: str, scope: Optional[LogoutScope] = None) -> Operation:
    return Operation(
        name="logout",
        method="POST",
        path="logout",
        params=_query(("scope", LogoutScope(scope).value if scope else None)),
        bearer_token=bearer_token,
        expect=Expect.NO_CONTENT,
        session_effect=SessionEffect.CLEAR,
    )


# =============================================================================
# Passwordless
# =============================================================================

def send_login_email_with_magic_link(email: str) -> Operation:
    return Operation(
        name="send_login_email_with_magic_link",
        method="POST",
        path="magiclink",
        body={"email": email},
        expect=Expect.NO_CONTENT,
    )


def send_sms_with_otp(phone: str) -> Operation:
    return Operation(
        name="send_sms_with_otp",
        method="POST",
        path="otp",
        body={"phone": phone},
        expect=Expect.STATUS_FIRST,
        parser=OTPResponse.from_dict,
    )


def send_email_with_otp(email: str, options: Optional[LoginEmailOtpParams] = None) -> Operation:
    body: Dict[str, Any] = {"email": email}
    redirect_to = None
    if options is not None:
        body.update(options.to_dict())
        redirect_to = options.email_redirect_to
    return Operation(
        name="send_email_with_otp",
        method="POST",
        path="otp",
        params=_query(("redirect_to", redirect_to)),
        body=body,
        expect=Expect.STATUS_FIRST,
        parser=OTPResponse.from_dict,
    )


def verify_otp(params: VerifyOtpParams) -> Operation:
    return Operation(
        name="verify_otp",
        method="POST",
        path="verify",
        body=params.to_dict(),
        expect=Expect.SHAPE,
        parser=Session.from_dict,
        session_effect=SessionEffect.STORE,
    )


def reset_password_for_email(email: str, options: Optional[ResetPasswordOptions] = None) -> Operation:
    body: Dict[str, Any] = {"email": email}
    redirect_to = None
    if options is not None:
        redirect_to = options.email_redirect_to
        if options.captcha_token is not None:
            body["gotrue_meta_security"] = {"captcha_token": options.captcha_token}
    return Operation(
        name="reset_password_for_email",
        method="POST",
        path="recover",
        params=_query(("redirect_to", redirect_to)),
        body=body,
        expect=Expect.NO_CONTENT,
    )


def resend(params: ResendParams) -> Operation:
    redirect_to = None
    if isinstance(params, DesktopResendParams):
        redirect_to = params.email_redirect_to
    return Operation(
        name="resend",
        method="POST",
        path="resend",
        params=_query(("redirect_to", redirect_to)),
        body=params.to_dict(),
        expect=Expect.NO_CONTENT,
    )


# =============================================================================
# Users and server
# =============================================================================

def get_user(bearer_token: str) -> Operation:
    return Operation(
        name="get_user",
        method="GET",
        path="user",
        bearer_token=bearer_token,
        expect=Expect.SHAPE,
        parser=User.from_dict,
    )


def update_user(updated_user: UpdatedUser, bearer_token: str) -> Operation:
    return Operation(
        name="update_user",
        method="PUT",
        path="user",
        body=updated_user.to_dict(),
        bearer_token=bearer_token,
        expect=Expect.SHAPE,
        parser=User.from_dict,
    )


def invite_user_by_email(
    email: str, data: Optional[Dict[str, Any]], bearer_token: str
) -> Operation:
    body: Dict[str, Any] = {"email": email}
    if data is not None:
        body["data"] = data
    return Operation(
        name="invite_user_by_email",
        method="POST",
        path="invite",
        body=body,
        bearer_token=bearer_token,
        expect=Expect.SHAPE,
        parser=User.from_dict,
    )


def get_health() -> Operation:
    return Operation(
        name="get_health",
        method="GET",
        path="health",
        expect=Expect.SHAPE,
        parser=AuthServerHealth.from_dict,
    )


def get_settings() -> Operation:
    return Operation(
        name="get_settings",
        method="GET",
        path="settings",
        expect=Expect.SHAPE,
        parser=AuthServerSettings.from_dict,
    )


def sso(params: LoginWithSSO) -> Operation:
    return Operation(
        name="sso",
        method="POST",
        path="sso",
        body=params.to_dict(),
        expect=Expect.REDIRECT,
        follow_redirects=True,
    )


# =============================================================================
# OAuth (no network)
# =============================================================================

def build_oauth_url(
    base_url: str,
    provider: Union[Provider, str],
    options: Optional[LoginWithOAuthOptions] = None,
) -> OAuthResponse:
    """Build the authorize URL for ``provider``.

    The query holds ``provider`` first, then ``email_redirect_to`` and
    ``scopes`` when given, then each extra query parameter. Extra keys that
    repeat one of the reserved keys are dropped.
    """
    params: List[Tuple[str, str]] = [("provider", str(provider))]
    if options is not None:
        if options.redirect_to:
            params.append(("email_redirect_to", options.redirect_to))
        if options.scopes:
            params.append(("scopes", options.scopes))
        for key, value in (options.query_params or {}).items():
            if key in RESERVED_OAUTH_PARAMS:
                logger.warning("Ignoring reserved OAuth query parameter %r", key)
                continue
            params.append((key, str(value)))

    try:
        url = httpx.URL(f"{base_url}{AUTH_V1}/authorize", params=params)
    except (httpx.InvalidURL, TypeError, ValueError) as e:
        raise UrlParseError(f"Cannot build OAuth URL: {e}", {"provider": str(provider)}) from e
    if not url.scheme or not url.host:
        raise UrlParseError(
            f"Cannot build OAuth URL from base URL {base_url!r}",
            {"provider": str(provider)},
        )
    return OAuthResponse(url=str(url), provider=provider)
