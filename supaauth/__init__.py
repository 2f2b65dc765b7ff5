"""
SupaAuth Python Client

A typed client for a hosted auth service's HTTP API (/auth/v1): sign-up,
sign-in, session refresh, OTP and magic-link delivery, OAuth/SSO redirects,
user administration and server health/settings. Sync and async clients.
"""

from .client import AuthClient, AsyncAuthClient, create_auth_client, create_async_auth_client
from .types import (
    AuthClientConfig,
    SessionStorage,
    Session,
    User,
    Identity,
    EmailSignUpConfirmation,
    EmailSignUpResult,
    OTPResponse,
    AuthServerHealth,
    AuthServerSettings,
    OAuthResponse,
    Provider,
    LogoutScope,
    OtpType,
    EmailOtpType,
    MobileOtpType,
    SignUpWithPasswordOptions,
    LoginAnonymouslyOptions,
    LoginEmailOtpParams,
    IdTokenCredentials,
    UpdatedUser,
    VerifyOtpOptions,
    VerifyMobileOtpParams,
    VerifyEmailOtpParams,
    VerifyTokenHashParams,
    DesktopResendParams,
    MobileResendParams,
    ResetPasswordOptions,
    LoginWithOAuthOptions,
    LoginWithSSO,
    SSOOptions,
)
from .errors import (
    SupaAuthError,
    ConfigurationError,
    SerializationError,
    NetworkError,
    HeaderError,
    AuthError,
    UrlParseError,
    is_supaauth_error,
    is_retryable_error,
)
from .storage import MemorySessionStorage
from .tokens import TokenVerificationError, TokenVerificationErrorCode, verify_access_token

__version__ = "0.1.0"
__all__ = [
    # Clients
    "AuthClient",
    "AsyncAuthClient",
    "create_auth_client",
    "create_async_auth_client",
    # Types
    "AuthClientConfig",
    "SessionStorage",
    "Session",
    "User",
    "Identity",
    "EmailSignUpConfirmation",
    "EmailSignUpResult",
    "OTPResponse",
    "AuthServerHealth",
    "AuthServerSettings",
    "OAuthResponse",
    "Provider",
    "LogoutScope",
    "OtpType",
    "EmailOtpType",
    "MobileOtpType",
    "SignUpWithPasswordOptions",
    "LoginAnonymouslyOptions",
    "LoginEmailOtpParams",
    "IdTokenCredentials",
    "UpdatedUser",
    "VerifyOtpOptions",
    "VerifyMobileOtpParams",
    "VerifyEmailOtpParams",
    "VerifyTokenHashParams",
    "DesktopResendParams",
    "MobileResendParams",
    "ResetPasswordOptions",
    "LoginWithOAuthOptions",
    "LoginWithSSO",
    "SSOOptions",
    # Errors
    "SupaAuthError",
    "ConfigurationError",
    "SerializationError",
    "NetworkError",
    "HeaderError",
    "AuthError",
    "UrlParseError",
    "TokenVerificationError",
    "TokenVerificationErrorCode",
    "is_supaauth_error",
    "is_retryable_error",
    # Storage
    "MemorySessionStorage",
    # Tokens
    "verify_access_token",
]
