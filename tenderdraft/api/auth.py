"""Request authentication strategies.

Every route that touches organization data resolves an :class:`AuthContext`
through the strategy stored on ``app.state.auth``:

- :class:`ApiKeyAuth` -- requires ``Authorization: Bearer <api_key>``; the
  organization comes from the ``X-Organization-Id`` header, else the
  configured default organization.
- :class:`BypassAuth` -- accepts every request as the default organization.
  Intended for local development and tests.

The strategy is chosen from ``Settings.auth_mode`` by :func:`build_auth_strategy`.
"""

from __future__ import annotations

import hmac
from abc import ABC, abstractmethod

from fastapi import Request
from pydantic import BaseModel, ConfigDict

from tenderdraft.config.settings import Settings
from tenderdraft.utils.errors import AuthenticationError, ConfigurationError

_ORG_HEADER = "X-Organization-Id"
_BEARER_PREFIX = "bearer "


class AuthContext(BaseModel):
    """Identity attached to an authenticated request."""

    model_config = ConfigDict(frozen=True)

    org_id: str
    user_id: str | None = None


class IAuthStrategy(ABC):
    """Contract for resolving the caller of an HTTP request."""

    @abstractmethod
    async def authenticate(self, request: Request) -> AuthContext:
        """Return the caller's context or raise :class:`AuthenticationError`."""


class BypassAuth(IAuthStrategy):
    """Treats every request as coming from the default organization."""

    def __init__(self, default_org_id: str) -> None:
        self._default_org_id = default_org_id

    async def authenticate(self, request: Request) -> AuthContext:
        return AuthContext(org_id=self._default_org_id)


class ApiKeyAuth(IAuthStrategy):
    """Bearer-token check against a single shared API key."""

    def __init__(self, api_key: str, default_org_id: str) -> None:
        if not api_key:
            raise ConfigurationError(message="auth_mode 'api_key' requires API_KEY to be set")
        self._api_key = api_key
        self._default_org_id = default_org_id

    async def authenticate(self, request: Request) -> AuthContext:
        header = request.headers.get("Authorization", "")
        if not header.lower().startswith(_BEARER_PREFIX):
            raise AuthenticationError(message="Missing bearer token")

        token = header[len(_BEARER_PREFIX):].strip()
        if not hmac.compare_digest(token.encode(), self._api_key.encode()):
            raise AuthenticationError(message="Invalid API key")

        org_id = request.headers.get(_ORG_HEADER, "").strip() or self._default_org_id
        return AuthContext(org_id=org_id)


def build_auth_strategy(settings: Settings) -> IAuthStrategy:
    if settings.auth_mode == "api_key":
        return ApiKeyAuth(settings.api_key, settings.default_organization_id)
    return BypassAuth(settings.default_organization_id)
