"""
SupaAuth Client

Synchronous and asynchronous clients for the auth API. Both share request
shaping (``operations``) and response resolution (``resolution``); they
differ only in the httpx client that carries the request.

Each public operation is one request/response exchange. Nothing is retried.
The client caches the session returned by the latest successful sign-in or
refresh and drops it on logout.
"""

import logging
from typing import Any, Dict, Optional, Tuple, Union

import httpx

from . import operations as ops
from .errors import AuthError, ConfigurationError, HeaderError, NetworkError
from .operations import Operation, SessionEffect, session_of
from .resolution import resolve
from .storage import MemorySessionStorage
from .tokens import verify_access_token
from .types import (
    AuthClientConfig,
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
    ResetPasswordOptions,
    Session,
    SignUpWithPasswordOptions,
    UpdatedUser,
    User,
    VerifyOtpParams,
)


logger = logging.getLogger("supaauth")


class _BaseAuthClient:
    """Configuration, session cache and the parts that never touch the network."""

    def __init__(self, config: AuthClientConfig) -> None:
        self._validate_config(config)

        self._config = config
        self._base_url = config.base_url
        self._api_key = config.api_key
        self._jwt_secret = config.jwt_secret
        self._timeout = config.timeout
        self._custom_headers = dict(config.headers or {})
        self._storage = config.storage if config.storage else MemorySessionStorage()
        self._debug = config.debug

    @classmethod
    def from_env(cls, **overrides: Any) -> Any:
        """Create a client from SUPABASE_URL, SUPABASE_API_KEY and SUPABASE_JWT_SECRET."""
        return cls(AuthClientConfig.from_env(**overrides))

    def _validate_config(self, config: AuthClientConfig) -> None:
        """Validate configuration."""
        if not config.base_url:
            raise ConfigurationError("base_url is required")
        if not config.api_key:
            raise ConfigurationError("api_key is required")

    def _log(self, message: str, *args: Any) -> None:
        """Log debug message."""
        if self._debug:
            logger.debug(f"[supaauth] {message}", *args)

    # =========================================================================
    # Configuration accessors
    # =========================================================================

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def api_key(self) -> str:
        return self._api_key

    @property
    def jwt_secret(self) -> str:
        return self._jwt_secret

    # =========================================================================
    # Session state
    # =========================================================================

    def session(self) -> Optional[Session]:
        """Get a copy of the cached session, or None if not signed in."""
        return self._storage.get_session()

    def is_authenticated(self) -> bool:
        """Check whether a session is cached. Expiry is not checked."""
        return self._storage.has_session()

    def verify_access_token(self, token: Optional[str] = None, leeway: int = 0) -> Dict[str, Any]:
        """Verify an access token (default: the cached one) against the JWT secret."""
        if token is None:
            token = self._bearer(None)
        return verify_access_token(token, self._jwt_secret, leeway=leeway)

    # =========================================================================
    # OAuth
    # =========================================================================

    def login_with_oauth(
        self,
        provider: Union[Provider, str],
        options: Optional[LoginWithOAuthOptions] = None,
    ) -> OAuthResponse:
        """
        Build the URL that starts an OAuth sign-in with ``provider``.

        No request is made; direct the user agent to ``response.url``.

        Raises:
            UrlParseError: If the URL cannot be built
        """
        response = ops.build_oauth_url(self._base_url, provider, options)
        self._log(f"OAuth URL built for provider {provider}")
        return response

    sign_up_with_oauth = login_with_oauth

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _bearer(self, token: Optional[str]) -> str:
        if token is not None:
            if not token:
                raise HeaderError("Authorization", "Bearer token is empty")
            return token
        session = self._storage.get_session()
        if session is None:
            raise AuthError(401, "No access token available", "SESSION_MISSING")
        return session.access_token

    def _prepare(self, op: Operation) -> Tuple[str, Dict[str, str], Optional[bytes]]:
        """Serialize and validate everything before a request goes out."""
        content = op.encode_body()
        headers = op.headers(self._api_key, self._custom_headers)
        return op.url(self._base_url), headers, content

    def _finish(self, op: Operation, status: int, text: str, final_url: str) -> Any:
        """Resolve the response and apply the operation's session effect."""
        try:
            result = resolve(op.expect, status, text, op.parser, final_url)
        except AuthError as e:
            self._log(f"{op.name} failed with status {e.status_code}")
            raise

        if op.session_effect is SessionEffect.STORE:
            session = session_of(result)
            if session is not None:
                self._storage.set_session(session)
        elif op.session_effect is SessionEffect.CLEAR:
            self._storage.clear_session()

        self._log(f"{op.name} succeeded (status {status})")
        return result


class AuthClient(_BaseAuthClient):
    """
    Auth Client - Synchronous entry point.

    Example:
        with AuthClient.from_env() as client:
            session = client.login_with_email("user@example.com", "password")
            user = client.get_user(session.access_token)
    """

    def __init__(
        self,
        config: AuthClientConfig,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        """Initialize the client. A supplied ``http_client`` is not closed by us."""
        super().__init__(config)
        self._owns_http_client = http_client is None
        self._http_client = http_client or httpx.Client(timeout=self._timeout)
        self._log(f"AuthClient initialized for {self._base_url}")

    # =========================================================================
    # Authentication Methods
    # =========================================================================

    def login_with_email(self, email: str, password: str) -> Session:
        """
        Sign in with email and password.

        Returns:
            The new session, which is also cached on the client

        Raises:
            AuthError: If the server rejects the credentials
        """
        self._log(f"Login attempt for: {email}")
        return self._execute(ops.login_with_email(email, password))

    def login_with_phone(self, phone: str, password: str) -> Session:
        """Sign in with phone number and password."""
        self._log(f"Login attempt for: {phone}")
        return self._execute(ops.login_with_phone(phone, password))

    def login_with_id_token(self, credentials: IdTokenCredentials) -> Session:
        """Sign in with an OIDC ID token from an enabled provider."""
        return self._execute(ops.login_with_id_token(credentials))

    def login_anonymously(self, options: Optional[LoginAnonymouslyOptions] = None) -> Session:
        """
        Create an anonymous user and sign in as it.

        Anonymous sign-ins must be enabled on the project.
        """
        return self._execute(ops.login_anonymously(options))

    def sign_up_with_email_and_password(
        self,
        email: str,
        password: str,
        options: Optional[SignUpWithPasswordOptions] = None,
    ) -> EmailSignUpResult:
        """
        Register a user by email.

        Returns:
            EmailSignUpResult holding either an active session (cached) or a
            pending confirmation when the address must be confirmed first
        """
        self._log(f"Sign-up attempt for: {email}")
        return self._execute(ops.sign_up_with_email_and_password(email, password, options))

    def sign_up_with_phone_and_password(
        self,
        phone: str,
        password: str,
        options: Optional[SignUpWithPasswordOptions] = None,
    ) -> Session:
        """Register a user by phone number."""
        self._log(f"Sign-up attempt for: {phone}")
        return self._execute(ops.sign_up_with_phone_and_password(phone, password, options))

    def exchange_token_for_session(self, refresh_token: str) -> Session:
        """Exchange a refresh token for a new session (cached)."""
        return self._execute(ops.exchange_token_for_session(refresh_token))

    refresh_session = exchange_token_for_session

    def logout(
        self,
        scope: Optional[LogoutScope] = None,
        bearer_token: Optional[str] = None,
    ) -> None:
        """
        Log out, ending the sessions selected by ``scope``.

        Uses the cached access token when ``bearer_token`` is omitted. The
        cached session is cleared only if the server accepts the logout.
        """
        self._log("Logout")
        self._execute(ops.logout(self._bearer(bearer_token), scope))

    # =========================================================================
    # Passwordless
    # =========================================================================

    def send_login_email_with_magic_link(self, email: str) -> None:
        """Send a sign-in email containing a magic link."""
        self._execute(ops.send_login_email_with_magic_link(email))

    def send_sms_with_otp(self, phone: str) -> OTPResponse:
        """Send a one-time password by SMS."""
        return self._execute(ops.send_sms_with_otp(phone))

    def send_email_with_otp(
        self, email: str, options: Optional[LoginEmailOtpParams] = None
    ) -> OTPResponse:
        """Send a one-time password by email."""
        return self._execute(ops.send_email_with_otp(email, options))

    def verify_otp(self, params: VerifyOtpParams) -> Session:
        """Verify an OTP or token hash and sign in with it (session cached)."""
        return self._execute(ops.verify_otp(params))

    def reset_password_for_email(
        self, email: str, options: Optional[ResetPasswordOptions] = None
    ) -> None:
        """
        Send a password recovery email.

        Invalid addresses are rejected with status 400; unknown but valid
        addresses are not an error.
        """
        self._execute(ops.reset_password_for_email(email, options))

    def resend(self, params: ResendParams) -> None:
        """Resend a sign-up confirmation, email change, SMS or phone change OTP."""
        self._execute(ops.resend(params))

    # =========================================================================
    # User Methods
    # =========================================================================

    def get_user(self, bearer_token: Optional[str] = None) -> User:
        """Fetch the user the access token belongs to."""
        return self._execute(ops.get_user(self._bearer(bearer_token)))

    def update_user(self, updated_user: UpdatedUser, bearer_token: Optional[str] = None) -> User:
        """Change the signed-in user's email, phone, password or metadata."""
        return self._execute(ops.update_user(updated_user, self._bearer(bearer_token)))

    def invite_user_by_email(
        self,
        email: str,
        data: Optional[Dict[str, Any]],
        bearer_token: str,
    ) -> User:
        """
        Send an invite link. Requires a service-role bearer token.

        ``data`` becomes the invited user's metadata.
        """
        return self._execute(ops.invite_user_by_email(email, data, bearer_token))

    # =========================================================================
    # Server Methods
    # =========================================================================

    def get_health(self) -> AuthServerHealth:
        """Check the health of the auth server."""
        return self._execute(ops.get_health())

    def get_settings(self) -> AuthServerSettings:
        """Retrieve the server's public settings."""
        return self._execute(ops.get_settings())

    def sso(self, params: LoginWithSSO) -> str:
        """
        Start an SSO sign-in.

        Returns:
            The URL where the user must authenticate with the identity provider
        """
        return self._execute(ops.sso(params))

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _execute(self, op: Operation) -> Any:
        """Execute a single HTTP request and resolve its response."""
        url, headers, content = self._prepare(op)
        try:
            response = self._http_client.request(
                method=op.method,
                url=url,
                params=op.params or None,
                headers=headers,
                content=content,
                follow_redirects=op.follow_redirects,
            )
            text = response.text
        except httpx.TimeoutException as e:
            raise NetworkError("Request timeout", {"timeout": self._timeout}) from e
        except httpx.RequestError as e:
            raise NetworkError(str(e), {"operation": op.name}) from e

        return self._finish(op, response.status_code, text, str(response.url))

    def close(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._owns_http_client:
            self._http_client.close()

    def __enter__(self) -> "AuthClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


# =============================================================================
# Async Client
# =============================================================================

class AsyncAuthClient(_BaseAuthClient):
    """
    Auth Async Client - Asynchronous entry point.

    Same operations as AuthClient, awaited. Cancel a call by cancelling the
    task running it.
    """

    def __init__(
        self,
        config: AuthClientConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize the async client. A supplied ``http_client`` is not closed by us."""
        super().__init__(config)
        self._owns_http_client = http_client is None
        # HTTP client (created lazily)
        self._http_client: Optional[httpx.AsyncClient] = http_client
        self._log(f"AsyncAuthClient initialized for {self._base_url}")

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    # =========================================================================
    # Authentication Methods
    # =========================================================================

    async def login_with_email(self, email: str, password: str) -> Session:
        """Sign in with email and password."""
        self._log(f"Login attempt for: {email}")
        return await self._execute(ops.login_with_email(email, password))

    async def login_with_phone(self, phone: str, password: str) -> Session:
        """Sign in with phone number and password."""
        self._log(f"Login attempt for: {phone}")
        return await self._execute(ops.login_with_phone(phone, password))

    async def login_with_id_token(self, credentials: IdTokenCredentials) -> Session:
        return await self._execute(ops.login_with_id_token(credentials))

    async def login_anonymously(
        self, options: Optional[LoginAnonymouslyOptions] = None
    ) -> Session:
        return await self._execute(ops.login_anonymously(options))

    async def sign_up_with_email_and_password(
        self,
        email: str,
        password: str,
        options: Optional[SignUpWithPasswordOptions] = None,
    ) -> EmailSignUpResult:
        """Register a user by email."""
        self._log(f"Sign-up attempt for: {email}")
        return await self._execute(ops.sign_up_with_email_and_password(email, password, options))

    async def sign_up_with_phone_and_password(
        self,
        phone: str,
        password: str,
        options: Optional[SignUpWithPasswordOptions] = None,
    ) -> Session:
        """Register a user by phone number."""
        self._log(f"Sign-up attempt for: {phone}")
        return await self._execute(ops.sign_up_with_phone_and_password(phone, password, options))

    async def exchange_token_for_session(self, refresh_token: str) -> Session:
        """Exchange a refresh token for a new session (cached)."""
        return await self._execute(ops.exchange_token_for_session(refresh_token))

    refresh_session = exchange_token_for_session

    async def logout(
        self,
        scope: Optional[LogoutScope] = None,
        bearer_token: Optional[str] = None,
    ) -> None:
        """Log out; the cached session is cleared once the server accepts it."""
        self._log("Logout")
        await self._execute(ops.logout(self._bearer(bearer_token), scope))

    # =========================================================================
    # Passwordless
    # =========================================================================

    async def send_login_email_with_magic_link(self, email: str) -> None:
        await self._execute(ops.send_login_email_with_magic_link(email))

    async def send_sms_with_otp(self, phone: str) -> OTPResponse:
        return await self._execute(ops.send_sms_with_otp(phone))

    async def send_email_with_otp(
        self, email: str, options: Optional[LoginEmailOtpParams] = None
    ) -> OTPResponse:
        return await self._execute(ops.send_email_with_otp(email, options))

    async def verify_otp(self, params: VerifyOtpParams) -> Session:
        return await self._execute(ops.verify_otp(params))

    async def reset_password_for_email(
        self, email: str, options: Optional[ResetPasswordOptions] = None
    ) -> None:
        await self._execute(ops.reset_password_for_email(email, options))

    async def resend(self, params: ResendParams) -> None:
        await self._execute(ops.resend(params))

    # =========================================================================
    # User Methods
    # =========================================================================

    async def get_user(self, bearer_token: Optional[str] = None) -> User:
        """Fetch the user the access token belongs to."""
        return await self._execute(ops.get_user(self._bearer(bearer_token)))

    async def update_user(
        self, updated_user: UpdatedUser, bearer_token: Optional[str] = None
    ) -> User:
        return await self._execute(ops.update_user(updated_user, self._bearer(bearer_token)))

    async def invite_user_by_email(
        self,
        email: str,
        data: Optional[Dict[str, Any]],
        bearer_token: str,
    ) -> User:
        return await self._execute(ops.invite_user_by_email(email, data, bearer_token))

    # =========================================================================
    # Server Methods
    # =========================================================================

    async def get_health(self) -> AuthServerHealth:
        return await self._execute(ops.get_health())

    async def get_settings(self) -> AuthServerSettings:
        return await self._execute(ops.get_settings())

    async def sso(self, params: LoginWithSSO) -> str:
        """Start an SSO sign-in and return the identity provider URL."""
        return await self._execute(ops.sso(params))

    # =========================================================================
    # Internal Methods
    # =========================================================================

    async def _execute(self, op: Operation) -> Any:
        """Execute a single HTTP request and resolve its response."""
        url, headers, content = self._prepare(op)
        try:
            client = self._get_client()
            response = await client.request(
                method=op.method,
                url=url,
                params=op.params or None,
                headers=headers,
                content=content,
                follow_redirects=op.follow_redirects,
            )
            text = response.text
        except httpx.TimeoutException as e:
            raise NetworkError("Request timeout", {"timeout": self._timeout}) from e
        except httpx.RequestError as e:
            raise NetworkError(str(e), {"operation": op.name}) from e

        return self._finish(op, response.status_code, text, str(response.url))

    async def close(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._http_client and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "AsyncAuthClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


# =============================================================================
# Factory Functions
# =============================================================================

def create_auth_client(config: AuthClientConfig) -> AuthClient:
    """Create a new synchronous auth client."""
    return AuthClient(config)


def create_async_auth_client(config: AuthClientConfig) -> AsyncAuthClient:
    """Create a new asynchronous auth client."""
    return AsyncAuthClient(config)
