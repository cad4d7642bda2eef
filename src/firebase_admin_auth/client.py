"""The auth client: custom token minting and credential verification.

``Client`` wires the components together from a ``ClientConfig``:

- a Signer (service account, remote IAM or emulated) behind a TokenMinter
- one TokenVerifier per credential kind, each with its own HTTPKeySource
- an IdentityToolkitUserLookup for revocation and disabled-user checks

Every collaborator can be injected instead, which is how tests and hosts
with their own key distribution use it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from ._http import BearerTokenAuth, HTTPClient
from .config import ClientConfig
from .errors import TenantIdMismatchError
from .key_sources import HTTPKeySource
from .minter import TokenMinter
from .revocation import RevocationChecker
from .signers import EmulatedSigner, IAMSigner, ServiceAccountSigner
from .user_lookup import ID_TOOLKIT_ENDPOINT, IdentityToolkitUserLookup, emulator_endpoint
from .verifier import ID_TOKEN, SESSION_COOKIE, TokenVerifier

if TYPE_CHECKING:
    import httpx

    from .protocols import Clock, KeySource, Signer, UserLookup
    from .tokens import Token

logger = logging.getLogger(__name__)

EMULATOR_ACCESS_TOKEN = "owner"
"""Bearer token accepted by the Auth emulator for admin calls."""


class Client:
    """Mints custom tokens and verifies ID tokens and session cookies.

    Thread Safety:
        Safe to share between threads. Construct one per project and reuse
        it; key caches live on the instance.

    Example:
        ```python
        client = Client(ClientConfig.from_env())

        custom_token = client.create_custom_token("user-1", {"premium": True})

        token = client.verify_id_token(id_token, check_revoked=True)
        print(token.uid, token.claims)
        ```

    Attributes:
        _config: Construction-time configuration.
        _minter: Creates custom tokens with the selected signer.
        _id_token_verifier: Verifies ID tokens.
        _session_cookie_verifier: Verifies session cookies.
        _user_lookup: User-management collaborator for revocation checks.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        signer: Signer | None = None,
        id_token_keys: KeySource | None = None,
        session_cookie_keys: KeySource | None = None,
        user_lookup: UserLookup | None = None,
        token_source: Callable[[], str] | None = None,
        transport: httpx.BaseTransport | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Build a client.

        Args:
            config: Settings; read from the environment when None.
            signer: Overrides the signer selected from ``config``.
            id_token_keys: Overrides the ID token certificate source.
            session_cookie_keys: Overrides the session cookie certificate source.
            user_lookup: Overrides the Identity Toolkit user lookup.
            token_source: Returns an OAuth2 access token for calls to Google
                APIs (IAM signBlob, user lookup). Unused with an emulator.
            transport: httpx transport for every outbound request. When given,
                ``config.retries`` is not applied.
            clock: Time source for minting, verification and key expiry.
        """
        self._config = config or ClientConfig.from_env()
        project_id = self._config.resolved_project_id
        emulator = self._config.emulator

        auth = None
        if emulator:
            auth = BearerTokenAuth(lambda: EMULATOR_ACCESS_TOKEN)
        elif token_source is not None:
            auth = BearerTokenAuth(token_source)

        self._http = HTTPClient(
            transport=transport,
            timeout=self._config.timeout,
            retries=self._config.retries,
            auth=auth,
        )
        # Certificate and metadata endpoints are public.
        self._public_http = HTTPClient(
            transport=transport,
            timeout=self._config.timeout,
            retries=self._config.retries,
        )

        self._clock = clock
        self._signer = signer or self._select_signer()
        self._minter = TokenMinter(self._signer, clock=clock)

        self._id_token_verifier = TokenVerifier(
            ID_TOKEN,
            project_id,
            id_token_keys or HTTPKeySource(ID_TOKEN.cert_url, http=self._public_http, clock=clock),
            clock=clock,
            emulator=emulator,
        )
        self._session_cookie_verifier = TokenVerifier(
            SESSION_COOKIE,
            project_id,
            session_cookie_keys
            or HTTPKeySource(SESSION_COOKIE.cert_url, http=self._public_http, clock=clock),
            clock=clock,
            emulator=emulator,
        )

        endpoint = ID_TOOLKIT_ENDPOINT
        if self._config.emulator_host:
            endpoint = emulator_endpoint(self._config.emulator_host)
        self._user_lookup = user_lookup or IdentityToolkitUserLookup(
            self._http, project_id, endpoint=endpoint
        )
        self._id_token_checker = RevocationChecker(self._id_token_verifier, self._user_lookup)
        self._session_cookie_checker = RevocationChecker(
            self._session_cookie_verifier, self._user_lookup
        )
        if emulator:
            logger.info("Using Auth emulator at %s", self._config.emulator_host)

    def _select_signer(self) -> Signer:
        config = self._config
        if config.emulator:
            return EmulatedSigner()

        service_account: Mapping[str, Any] = config.service_account or {}
        if service_account.get("private_key"):
            return ServiceAccountSigner.from_service_account(service_account)

        return IAMSigner(
            self._http,
            service_account=config.service_account_id or service_account.get("client_email"),
            metadata_http=self._public_http,
        )

    # ------------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------------

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def project_id(self) -> str | None:
        return self._config.resolved_project_id

    @property
    def signer(self) -> Signer:
        return self._signer

    @property
    def id_token_verifier(self) -> TokenVerifier:
        return self._id_token_verifier

    @property
    def session_cookie_verifier(self) -> TokenVerifier:
        return self._session_cookie_verifier

    @property
    def user_lookup(self) -> UserLookup:
        return self._user_lookup

    # ------------------------------------------------------------------------
    # Custom tokens
    # ------------------------------------------------------------------------

    def create_custom_token(
        self,
        uid: str,
        developer_claims: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> str:
        """Mint a custom token; see ``TokenMinter.create_custom_token``."""
        return self._minter.create_custom_token(uid, developer_claims, timeout=timeout)

    # ------------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------------

    def verify_id_token(
        self,
        id_token: str,
        *,
        check_revoked: bool = False,
        timeout: float | None = None,
    ) -> Token:
        """Verify an ID token.

        With ``check_revoked`` (always, against an emulator) the user is also
        looked up to reject disabled users and revoked tokens.

        Raises:
            InvalidIdTokenError: Malformed, mis-addressed or badly signed.
            ExpiredIdTokenError: Expired.
            RevokedIdTokenError: Revoked (revocation check only).
            UserDisabledError: User disabled (revocation check only).
            CertificateFetchError: Public keys unavailable.
        """
        if check_revoked or self._config.emulator:
            return self._id_token_checker.verify(id_token, timeout=timeout)
        return self._id_token_verifier.verify(id_token, timeout=timeout)

    def verify_id_token_and_check_revoked(
        self, id_token: str, *, timeout: float | None = None
    ) -> Token:
        return self.verify_id_token(id_token, check_revoked=True, timeout=timeout)

    def verify_session_cookie(
        self,
        session_cookie: str,
        *,
        check_revoked: bool = False,
        timeout: float | None = None,
    ) -> Token:
        """Verify a session cookie; the session cookie twin of ``verify_id_token``."""
        if check_revoked or self._config.emulator:
            return self._session_cookie_checker.verify(session_cookie, timeout=timeout)
        return self._session_cookie_verifier.verify(session_cookie, timeout=timeout)

    def verify_session_cookie_and_check_revoked(
        self, session_cookie: str, *, timeout: float | None = None
    ) -> Token:
        return self.verify_session_cookie(session_cookie, check_revoked=True, timeout=timeout)

    # ------------------------------------------------------------------------
    # Tenants and lifecycle
    # ------------------------------------------------------------------------

    def for_tenant(self, tenant_id: str) -> TenantClient:
        """Return a client scoped to one tenant.

        Raises:
            ValueError: ``tenant_id`` is empty.
        """
        return TenantClient(self, tenant_id)

    def close(self) -> None:
        self._http.close()
        self._public_http.close()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class TenantClient:
    """A view of a ``Client`` restricted to one tenant.

    Custom tokens carry ``tenant_id``; ID tokens from any other tenant are
    rejected with TenantIdMismatchError before revocation is checked. It
    shares the parent's key caches and HTTP clients.
    """

    def __init__(self, client: Client, tenant_id: str) -> None:
        if not isinstance(tenant_id, str) or not tenant_id:
            raise ValueError("tenant id must be a non-empty string")
        self._client = client
        self._tenant_id = tenant_id
        self._minter = TokenMinter(
            client.signer, tenant_id=tenant_id, clock=client._clock
        )
        user_lookup = client.user_lookup
        if isinstance(user_lookup, IdentityToolkitUserLookup):
            user_lookup = user_lookup.for_tenant(tenant_id)
        self._user_lookup = user_lookup

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    def create_custom_token(
        self,
        uid: str,
        developer_claims: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> str:
        return self._minter.create_custom_token(uid, developer_claims, timeout=timeout)

    def verify_id_token(
        self,
        id_token: str,
        *,
        check_revoked: bool = False,
        timeout: float | None = None,
    ) -> Token:
        """Verify an ID token issued to this tenant.

        Raises:
            TenantIdMismatchError: The token belongs to another tenant (or none).
            AuthError: See ``Client.verify_id_token``.
        """
        verifier = self._client.id_token_verifier
        token = verifier.verify(id_token, timeout=timeout)
        if token.tenant_id != self._tenant_id:
            raise TenantIdMismatchError(f'invalid tenant id: "{token.tenant_id}"')

        if check_revoked or self._client.config.emulator:
            RevocationChecker(verifier, self._user_lookup).check(token, timeout=timeout)
        return token

    def verify_id_token_and_check_revoked(
        self, id_token: str, *, timeout: float | None = None
    ) -> Token:
        return self.verify_id_token(id_token, check_revoked=True, timeout=timeout)
