"""Canonical Pydantic models shared across all pixyauth modules.

This is the single source of truth for data shapes in the project. The models
fall into three groups:

**Issuer and flow models** -- values that travel through one authorization
attempt:
    :class:`Issuer`, :class:`OIDCWellKnownEndpoints`, :class:`Challenge`,
    :class:`CallbackResponse`, :class:`AuthorizationCodeResult`,
    :class:`AuthorizationCodeExchangeRequest`,
    :class:`RefreshTokenExchangeRequest`.

**Token models** -- what the issuer returns and what the cache persists:
    :class:`AuthorizationTokenResponse` and :class:`TokenResult`.

**CLI models** -- settings assembled by the entry point and the object printed
for ``kubectl``:
    :class:`AuthSettings`, :class:`ExecCredential`.

All models use Pydantic v2. Values the flow must not mutate are declared
``frozen``.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Issuer ---


class Issuer(BaseModel):
    """Identity of the OAuth2/OIDC issuer and the client registered with it.

    Example::

        Issuer(issuer_endpoint="https://issuer", client_id="abc", audience="aud")
    """

    model_config = ConfigDict(frozen=True)

    issuer_endpoint: str = Field(description="Base URL of the issuer")
    client_id: str
    audience: str


class OIDCWellKnownEndpoints(BaseModel):
    """The two issuer endpoints the PKCE flow talks to."""

    model_config = ConfigDict(frozen=True)

    authorization_endpoint: str
    token_endpoint: str


def cache_identifier(issuer: Issuer) -> str:
    """Return the cache key tokens for *issuer* are stored under."""
    return f"{issuer.client_id}-{issuer.audience}"


# --- Flow values ---


class Challenge(BaseModel):
    """A PKCE verifier and the challenge derived from it.

    ``verifier`` stays on this machine until the code exchange; only ``code``
    and ``method`` appear in the authorize URL.
    """

    model_config = ConfigDict(frozen=True)

    verifier: str
    code: str
    method: str = "S256"


class CallbackResponse(BaseModel):
    """The outcome delivered by the loopback callback handler.

    Exactly one of :attr:`code` and :attr:`error` is meaningful: a response
    with a non-``None`` error carries no usable code.
    """

    code: str = ""
    error: Optional[str] = None


class AuthorizationCodeResult(BaseModel):
    """An authorization code and the redirect URI it was issued for."""

    code: str
    redirect_uri: str


class AuthorizationCodeExchangeRequest(BaseModel):
    """Inputs of the ``authorization_code`` grant."""

    client_id: str
    code_verifier: str
    code: str
    redirect_uri: str


class RefreshTokenExchangeRequest(BaseModel):
    """Inputs of the ``refresh_token`` grant."""

    client_id: str
    refresh_token: str


# --- Tokens ---


class AuthorizationTokenResponse(BaseModel):
    """Raw token endpoint response.

    Not every field is present for every grant; ``null`` values are accepted
    and unknown fields are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    access_token: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: Optional[str] = None

    def to_token_result(self) -> TokenResult:
        return TokenResult(
            access_token=self.access_token or "",
            id_token=self.id_token or "",
            refresh_token=self.refresh_token or "",
            expires_in=self.expires_in or 0,
        )


class TokenResult(BaseModel):
    """The unit persisted in the token cache.

    Any subset of fields may be empty depending on which grant produced it
    and which scopes were requested.
    """

    access_token: str = ""
    id_token: str = ""
    refresh_token: str = ""
    expires_in: int = 0


# --- CLI ---


class CacheBackend(str, enum.Enum):
    """Where tokens are cached between invocations."""

    KEYRING = "keyring"
    FILE = "file"


class AuthSettings(BaseModel):
    """Everything one ``pixyauth auth`` invocation needs, built once in the entry point.

    Example::

        AuthSettings(
            issuer_endpoint="https://issuer",
            client_id="abc",
            audience="aud",
            with_refresh_token=True,
        )
    """

    issuer_endpoint: str
    client_id: str
    audience: str
    use_id_token: bool = Field(
        default=False, description="Print the id token instead of the access token"
    )
    with_refresh_token: bool = Field(
        default=False, description="Request offline_access and refresh cached tokens"
    )
    callback_port: int = Field(
        default=8080, ge=0, le=65535, description="Loopback port for the callback (0 = ephemeral)"
    )
    cache_backend: CacheBackend = CacheBackend.KEYRING
    authorization_endpoint: Optional[str] = Field(
        default=None, description="Skip discovery and use this authorization endpoint"
    )
    token_endpoint: Optional[str] = Field(
        default=None, description="Skip discovery and use this token endpoint"
    )

    @property
    def issuer(self) -> Issuer:
        return Issuer(
            issuer_endpoint=self.issuer_endpoint,
            client_id=self.client_id,
            audience=self.audience,
        )


EXEC_CREDENTIAL_API_VERSION = "client.authentication.k8s.io/v1beta1"


class ExecCredentialStatus(BaseModel):
    token: str


class ExecCredential(BaseModel):
    """The object ``kubectl`` reads from an exec credential plugin's stdout."""

    model_config = ConfigDict(populate_by_name=True)

    kind: str = "ExecCredential"
    api_version: str = Field(default=EXEC_CREDENTIAL_API_VERSION, alias="apiVersion")
    spec: dict[str, Any] = Field(default_factory=dict)
    status: ExecCredentialStatus

    @classmethod
    def for_token(cls, token: str) -> ExecCredential:
        return cls(status=ExecCredentialStatus(token=token))

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
