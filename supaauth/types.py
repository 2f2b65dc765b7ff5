"""
SupaAuth Type Definitions

Configuration, response records and request payloads for the auth API.

Response records are parsed strictly: ``from_dict`` raises ``KeyError``,
``TypeError`` or ``ValueError`` when a required field is missing or has the
wrong JSON type. The response resolver relies on this to decide which shape
a body has.
"""

import copy
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Union, runtime_checkable

from .errors import ConfigurationError


# Environment variables read by AuthClientConfig.from_env
ENV_URL = "SUPABASE_URL"
ENV_API_KEY = "SUPABASE_API_KEY"
ENV_JWT_SECRET = "SUPABASE_JWT_SECRET"

_MISSING = object()


def _object(data: Any, name: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise TypeError(f"{name} must be a JSON object, got {type(data).__name__}")
    return data


def _field(data: Dict[str, Any], key: str, kind: Any, default: Any = _MISSING) -> Any:
    """Read ``key`` and check its JSON type. Absent or null uses ``default``."""
    value = data.get(key)
    if value is None:
        if default is _MISSING:
            raise KeyError(key)
        return default
    # bool is an int subclass; JSON true is not a number
    if kind is int and isinstance(value, bool):
        raise TypeError(f"{key} must be int, got bool")
    if not isinstance(value, kind):
        raise TypeError(f"{key} has unexpected type {type(value).__name__}")
    return value


def _captcha(captcha_token: Optional[str]) -> Dict[str, Any]:
    if captcha_token is None:
        return {}
    return {"gotrue_meta_security": {"captcha_token": captcha_token}}


# =============================================================================
# Enumerations
# =============================================================================

class Provider(str, Enum):
    """OAuth / OIDC identity providers."""
    APPLE = "apple"
    AZURE = "azure"
    BITBUCKET = "bitbucket"
    DISCORD = "discord"
    FACEBOOK = "facebook"
    FIGMA = "figma"
    FLY = "fly"
    GITHUB = "github"
    GITLAB = "gitlab"
    GOOGLE = "google"
    KAKAO = "kakao"
    KEYCLOAK = "keycloak"
    LINKEDIN = "linkedin"
    LINKEDIN_OIDC = "linkedin_oidc"
    NOTION = "notion"
    SLACK = "slack"
    SLACK_OIDC = "slack_oidc"
    SPOTIFY = "spotify"
    TWITCH = "twitch"
    TWITTER = "twitter"
    WORKOS = "workos"
    ZOOM = "zoom"

    def __str__(self) -> str:
        return self.value


class LogoutScope(str, Enum):
    """Which sessions a logout terminates."""
    GLOBAL = "global"
    LOCAL = "local"
    OTHERS = "others"


class OtpType(str, Enum):
    SIGNUP = "signup"
    INVITE = "invite"
    MAGICLINK = "magiclink"
    RECOVERY = "recovery"
    EMAIL_CHANGE = "email_change"
    EMAIL = "email"
    SMS = "sms"
    PHONE_CHANGE = "phone_change"


class EmailOtpType(str, Enum):
    SIGNUP = "signup"
    INVITE = "invite"
    MAGICLINK = "magiclink"
    RECOVERY = "recovery"
    EMAIL_CHANGE = "email_change"
    EMAIL = "email"


class MobileOtpType(str, Enum):
    SMS = "sms"
    PHONE_CHANGE = "phone_change"


# =============================================================================
# Configuration and storage
# =============================================================================

@runtime_checkable
class SessionStorage(Protocol):
    """Session storage interface for custom implementations."""

    def get_session(self) -> Optional["Session"]:
        """Get a copy of the stored session."""
        ...

    def set_session(self, session: "Session") -> None:
        """Replace the stored session."""
        ...

    def clear_session(self) -> None:
        """Drop the stored session."""
        ...

    def has_session(self) -> bool:
        """Check whether a session is stored, without copying it."""
        ...


@dataclass(frozen=True)
class AuthClientConfig:
    """Client configuration. Immutable once built."""

    # Project URL, e.g. https://abc.supabase.co
    base_url: str
    # API key sent in the ``apikey`` header on every request
    api_key: str
    # Secret used to sign access tokens (HS256)
    jwt_secret: str = ""
    # Request timeout in seconds (default: 30)
    timeout: float = 30.0
    # Extra headers to include in requests
    headers: Optional[Dict[str, str]] = None
    # Custom session storage (default: None, uses MemorySessionStorage)
    storage: Optional[SessionStorage] = None
    # Enable debug logging (default: False)
    debug: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_env(cls, **overrides: Any) -> "AuthClientConfig":
        """Build a config from SUPABASE_URL, SUPABASE_API_KEY and SUPABASE_JWT_SECRET."""
        values: Dict[str, str] = {}
        for attr, var in (
            ("base_url", ENV_URL),
            ("api_key", ENV_API_KEY),
            ("jwt_secret", ENV_JWT_SECRET),
        ):
            value = os.environ.get(var)
            if not value:
                raise ConfigurationError(
                    f"Environment variable {var} is not set", variable=var
                )
            values[attr] = value
        values.update(overrides)
        return cls(**values)


# =============================================================================
# Response records
# =============================================================================

@dataclass
class Identity:
    """An external identity linked to a user."""

    id: str
    user_id: str
    provider: str
    identity_id: Optional[str] = None
    identity_data: Dict[str, Any] = field(default_factory=dict)
    email: Optional[str] = None
    last_sign_in_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Identity":
        data = _object(data, "identity")
        return cls(
            id=_field(data, "id", str),
            user_id=_field(data, "user_id", str),
            provider=_field(data, "provider", str),
            identity_id=_field(data, "identity_id", str, None),
            identity_data=_field(data, "identity_data", dict, {}),
            email=_field(data, "email", str, None),
            last_sign_in_at=_field(data, "last_sign_in_at", str, None),
            created_at=_field(data, "created_at", str, None),
            updated_at=_field(data, "updated_at", str, None),
        )


@dataclass
class User:
    """User record returned by the auth server."""

    id: str
    aud: str
    created_at: str
    updated_at: str
    role: str = ""
    email: str = ""
    phone: str = ""
    invited_at: Optional[str] = None
    confirmation_sent_at: Optional[str] = None
    email_confirmed_at: Optional[str] = None
    phone_confirmed_at: Optional[str] = None
    confirmed_at: Optional[str] = None
    recovery_sent_at: Optional[str] = None
    last_sign_in_at: Optional[str] = None
    app_metadata: Dict[str, Any] = field(default_factory=dict)
    user_metadata: Dict[str, Any] = field(default_factory=dict)
    identities: List[Identity] = field(default_factory=list)
    is_anonymous: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "User":
        """Create from dictionary."""
        data = _object(data, "user")
        return cls(
            id=_field(data, "id", str),
            aud=_field(data, "aud", str),
            created_at=_field(data, "created_at", str),
            updated_at=_field(data, "updated_at", str),
            role=_field(data, "role", str, ""),
            email=_field(data, "email", str, ""),
            phone=_field(data, "phone", str, ""),
            invited_at=_field(data, "invited_at", str, None),
            confirmation_sent_at=_field(data, "confirmation_sent_at", str, None),
            email_confirmed_at=_field(data, "email_confirmed_at", str, None),
            phone_confirmed_at=_field(data, "phone_confirmed_at", str, None),
            confirmed_at=_field(data, "confirmed_at", str, None),
            recovery_sent_at=_field(data, "recovery_sent_at", str, None),
            last_sign_in_at=_field(data, "last_sign_in_at", str, None),
            app_metadata=_field(data, "app_metadata", dict, {}),
            user_metadata=_field(data, "user_metadata", dict, {}),
            identities=[
                Identity.from_dict(i) for i in _field(data, "identities", list, [])
            ],
            is_anonymous=_field(data, "is_anonymous", bool, False),
        )


@dataclass
class Session:
    """Access/refresh token pair plus the user it belongs to."""

    access_token: str
    token_type: str
    expires_in: int
    refresh_token: str
    user: User
    expires_at: Optional[int] = None
    provider_token: Optional[str] = None
    provider_refresh_token: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Session":
        """Create from dictionary."""
        data = _object(data, "session")
        return cls(
            access_token=_field(data, "access_token", str),
            token_type=_field(data, "token_type", str),
            expires_in=_field(data, "expires_in", int),
            refresh_token=_field(data, "refresh_token", str),
            user=User.from_dict(_field(data, "user", dict)),
            expires_at=_field(data, "expires_at", int, None),
            provider_token=_field(data, "provider_token", str, None),
            provider_refresh_token=_field(data, "provider_refresh_token", str, None),
        )

    def is_expired(self, leeway: int = 0, now: Optional[float] = None) -> bool:
        """Check ``expires_at`` against the clock. Never enforced by the client."""
        if self.expires_at is None:
            return False
        if now is None:
            now = time.time()
        return now >= self.expires_at - leeway

    def copy(self) -> "Session":
        return copy.deepcopy(self)


@dataclass
class EmailSignUpConfirmation:
    """Pending sign-up, returned when the address must be confirmed first."""

    id: str
    aud: str
    created_at: str
    updated_at: str
    role: str = ""
    email: str = ""
    phone: str = ""
    confirmation_sent_at: Optional[str] = None
    app_metadata: Dict[str, Any] = field(default_factory=dict)
    user_metadata: Dict[str, Any] = field(default_factory=dict)
    identities: List[Identity] = field(default_factory=list)
    is_anonymous: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "EmailSignUpConfirmation":
        data = _object(data, "sign-up confirmation")
        return cls(
            id=_field(data, "id", str),
            aud=_field(data, "aud", str),
            created_at=_field(data, "created_at", str),
            updated_at=_field(data, "updated_at", str),
            role=_field(data, "role", str, ""),
            email=_field(data, "email", str, ""),
            phone=_field(data, "phone", str, ""),
            confirmation_sent_at=_field(data, "confirmation_sent_at", str, None),
            app_metadata=_field(data, "app_metadata", dict, {}),
            user_metadata=_field(data, "user_metadata", dict, {}),
            identities=[
                Identity.from_dict(i) for i in _field(data, "identities", list, [])
            ],
            is_anonymous=_field(data, "is_anonymous", bool, False),
        )


@dataclass
class EmailSignUpResult:
    """Either an active session or a pending confirmation; exactly one is set."""

    session: Optional[Session] = None
    confirmation: Optional[EmailSignUpConfirmation] = None

    @property
    def is_confirmation(self) -> bool:
        return self.confirmation is not None

    @classmethod
    def from_dict(cls, data: Any) -> "EmailSignUpResult":
        try:
            return cls(session=Session.from_dict(data))
        except (KeyError, TypeError, ValueError):
            return cls(confirmation=EmailSignUpConfirmation.from_dict(data))


@dataclass
class OTPResponse:
    """Result of an OTP send. ``message_id`` is set for SMS deliveries."""

    message_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "OTPResponse":
        data = _object(data, "otp response")
        return cls(message_id=_field(data, "message_id", str, None))


@dataclass
class AuthServerHealth:
    """Auth server health status."""

    version: str
    name: str
    description: str

    @classmethod
    def from_dict(cls, data: Any) -> "AuthServerHealth":
        data = _object(data, "health")
        return cls(
            version=_field(data, "version", str),
            name=_field(data, "name", str),
            description=_field(data, "description", str),
        )


@dataclass
class AuthServerSettings:
    """Public settings of the auth server."""

    external: Dict[str, bool]
    disable_signup: bool
    mailer_autoconfirm: bool
    phone_autoconfirm: bool
    sms_provider: str = ""
    saml_enabled: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "AuthServerSettings":
        data = _object(data, "settings")
        external = _field(data, "external", dict)
        for name, enabled in external.items():
            if not isinstance(enabled, bool):
                raise TypeError(f"external.{name} must be bool")
        return cls(
            external=dict(external),
            disable_signup=_field(data, "disable_signup", bool),
            mailer_autoconfirm=_field(data, "mailer_autoconfirm", bool),
            phone_autoconfirm=_field(data, "phone_autoconfirm", bool),
            sms_provider=_field(data, "sms_provider", str, ""),
            saml_enabled=_field(data, "saml_enabled", bool, False),
        )


@dataclass
class ErrorEnvelope:
    """Structured error body: ``{"message": "...", ...}``."""

    message: str
    error_code: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "ErrorEnvelope":
        data = _object(data, "error")
        message = data.get("message")
        if message is None:
            # some endpoints name the field "msg"
            message = data.get("msg")
        if not isinstance(message, str):
            raise KeyError("message")
        error_code = data.get("error_code")
        if error_code is None and isinstance(data.get("code"), str):
            error_code = data["code"]
        return cls(
            message=message,
            error_code=error_code if isinstance(error_code, str) else None,
        )


@dataclass
class OAuthResponse:
    """Authorize URL for an OAuth provider."""

    url: str
    provider: Union[Provider, str]


# =============================================================================
# Request payloads
# =============================================================================

@dataclass
class SignUpWithPasswordOptions:
    """Options for email / phone sign-up."""

    email_redirect_to: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    captcha_token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.data is not None:
            result["data"] = self.data
        result.update(_captcha(self.captcha_token))
        return result


@dataclass
class LoginAnonymouslyOptions:
    data: Optional[Dict[str, Any]] = None
    captcha_token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.data is not None:
            result["data"] = self.data
        result.update(_captcha(self.captcha_token))
        return result


@dataclass
class LoginEmailOtpParams:
    """Options for sending a login OTP by email."""

    email_redirect_to: Optional[str] = None
    should_create_user: Optional[bool] = None
    data: Optional[Dict[str, Any]] = None
    captcha_token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.should_create_user is not None:
            result["create_user"] = self.should_create_user
        if self.data is not None:
            result["data"] = self.data
        result.update(_captcha(self.captcha_token))
        return result


@dataclass
class IdTokenCredentials:
    """OIDC ID token issued by an external provider."""

    provider: Union[Provider, str]
    token: str
    access_token: Optional[str] = None
    nonce: Optional[str] = None
    captcha_token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "provider": str(self.provider),
            "id_token": self.token,
        }
        if self.access_token is not None:
            result["access_token"] = self.access_token
        if self.nonce is not None:
            result["nonce"] = self.nonce
        result.update(_captcha(self.captcha_token))
        return result


@dataclass
class UpdatedUser:
    """User attributes to change. Unset fields are left untouched."""

    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    nonce: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.email is not None:
            result["email"] = self.email
        if self.password is not None:
            result["password"] = self.password
        if self.phone is not None:
            result["phone"] = self.phone
        if self.nonce is not None:
            result["nonce"] = self.nonce
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass
class VerifyOtpOptions:
    redirect_to: Optional[str] = None
    captcha_token: Optional[str] = None


@dataclass
class VerifyMobileOtpParams:
    phone: str
    token: str
    type: MobileOtpType = MobileOtpType.SMS
    options: Optional[VerifyOtpOptions] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "phone": self.phone,
            "token": self.token,
            "type": MobileOtpType(self.type).value,
        }
        return _with_verify_options(result, self.options)


@dataclass
class VerifyEmailOtpParams:
    email: str
    token: str
    type: EmailOtpType = EmailOtpType.EMAIL
    options: Optional[VerifyOtpOptions] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "email": self.email,
            "token": self.token,
            "type": EmailOtpType(self.type).value,
        }
        return _with_verify_options(result, self.options)


@dataclass
class VerifyTokenHashParams:
    token_hash: str
    type: OtpType

    def to_dict(self) -> Dict[str, Any]:
        return {"token_hash": self.token_hash, "type": OtpType(self.type).value}


VerifyOtpParams = Union[VerifyMobileOtpParams, VerifyEmailOtpParams, VerifyTokenHashParams]


def _with_verify_options(
    result: Dict[str, Any], options: Optional[VerifyOtpOptions]
) -> Dict[str, Any]:
    if options is not None:
        if options.redirect_to is not None:
            result["redirect_to"] = options.redirect_to
        result.update(_captcha(options.captcha_token))
    return result


@dataclass
class DesktopResendParams:
    """Resend an email confirmation or email-change OTP."""

    email: str
    type: EmailOtpType = EmailOtpType.SIGNUP
    email_redirect_to: Optional[str] = None
    captcha_token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "type": EmailOtpType(self.type).value,
            "email": self.email,
        }
        result.update(_captcha(self.captcha_token))
        return result


@dataclass
class MobileResendParams:
    """Resend an SMS or phone-change OTP."""

    phone: str
    type: MobileOtpType = MobileOtpType.SMS
    captcha_token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "type": MobileOtpType(self.type).value,
            "phone": self.phone,
        }
        result.update(_captcha(self.captcha_token))
        return result


ResendParams = Union[DesktopResendParams, MobileResendParams]


@dataclass
class ResetPasswordOptions:
    email_redirect_to: Optional[str] = None
    captcha_token: Optional[str] = None


@dataclass
class LoginWithOAuthOptions:
    """Options for building an OAuth authorize URL."""

    redirect_to: Optional[str] = None
    scopes: Optional[str] = None
    query_params: Optional[Dict[str, str]] = None
    # Informational; the client never opens a browser
    skip_browser_redirect: bool = False


@dataclass
class SSOOptions:
    redirect_to: Optional[str] = None
    captcha_token: Optional[str] = None
    skip_http_redirect: Optional[bool] = None


@dataclass
class LoginWithSSO:
    """Start SSO by identity-provider id or by the user's email domain."""

    provider_id: Optional[str] = None
    domain: Optional[str] = None
    options: Optional[SSOOptions] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.provider_id is not None:
            result["provider_id"] = self.provider_id
        if self.domain is not None:
            result["domain"] = self.domain
        if self.options is not None:
            if self.options.redirect_to is not None:
                result["redirect_to"] = self.options.redirect_to
            if self.options.skip_http_redirect is not None:
                result["skip_http_redirect"] = self.options.skip_http_redirect
            result.update(_captcha(self.options.captcha_token))
        return result
