"""
Bearer identity resolution.

Tokens are issued and verified by an upstream identity service; this module
only maps a presented token to a caller identity.
"""

from typing import Dict, Optional, Protocol

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..core.errors import Unauthenticated
from ..core.orchestrator import UserIdentity


bearer_scheme = HTTPBearer(auto_error=False)


class IdentityResolver(Protocol):
    def resolve(self, token: str) -> Optional[UserIdentity]:
        ...


class StaticTokenResolver:
    """Resolves tokens from a fixed token-to-identity mapping."""

    def __init__(self, tokens: Dict[str, UserIdentity]):
        self._tokens = dict(tokens)

    def resolve(self, token: str) -> Optional[UserIdentity]:
        return self._tokens.get(str(token or "").strip())


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> UserIdentity:
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()
    resolver: IdentityResolver = request.app.state.identity_resolver
    user = resolver.resolve(credentials.credentials)
    if user is None:
        raise Unauthenticated("Invalid or expired token")
    return user
