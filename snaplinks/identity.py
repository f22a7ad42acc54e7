"""Requester identity and role resolution."""

import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import httpx


class Role(str, enum.Enum):
    """Role held by a requester, resolved once per request."""

    ADMIN = "admin"
    USER = "user"
    ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class Requester:
    """Who is making a request."""

    user_id: Optional[str] = None
    role: Role = Role.ANONYMOUS

    @property
    def is_anonymous(self) -> bool:
        return not self.user_id

    @property
    def is_admin(self) -> bool:
        return not self.is_anonymous and self.role == Role.ADMIN


ANONYMOUS = Requester()


class IdentityProvider(ABC):
    """Turns a bearer token into a Requester."""

    @abstractmethod
    async def authenticate(self, token: Optional[str]) -> Requester:
        """Resolve a token.

        Args:
            token: Bearer token, or None when the request carried none

        Returns:
            The requester; ANONYMOUS for missing or unrecognised tokens
        """
        pass

    async def close(self) -> None:
        pass


def parse_token_table(entries: Iterable[str]) -> Dict[str, Requester]:
    """Parse ``token:user_id[:role]`` entries into a lookup table."""
    table = {}
    for entry in entries:
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split(":")
        if len(parts) not in (2, 3) or not parts[0] or not parts[1]:
            raise ValueError(f"Malformed API token entry: {entry!r}")
        role = Role(parts[2]) if len(parts) == 3 else Role.USER
        if role == Role.ANONYMOUS:
            raise ValueError(f"API token cannot grant the anonymous role: {entry!r}")
        table[parts[0]] = Requester(user_id=parts[1], role=role)
    return table


class StaticTokenIdentityProvider(IdentityProvider):
    """Identity from a fixed token table, for single-tenant installs and tests."""

    def __init__(self, tokens: Dict[str, Requester], logger: Optional[logging.Logger] = None):
        self.tokens = dict(tokens)
        self.logger = logger or logging.getLogger(__name__)

    async def authenticate(self, token: Optional[str]) -> Requester:
        if not token:
            return ANONYMOUS
        requester = self.tokens.get(token)
        if requester is None:
            self.logger.debug("Unknown API token presented")
            return ANONYMOUS
        return requester


class SupabaseIdentityProvider(IdentityProvider):
    """Identity from Supabase Auth, with roles from the ``user_roles`` table."""

    def __init__(
        self,
        supabase_url: str,
        api_key: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.supabase_url = supabase_url.rstrip("/")
        self.api_key = api_key
        self.logger = logger or logging.getLogger(__name__)
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def authenticate(self, token: Optional[str]) -> Requester:
        if not token:
            return ANONYMOUS

        try:
            response = await self.client.get(
                f"{self.supabase_url}/auth/v1/user",
                headers={"apikey": self.api_key, "Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            self.logger.error(f"Auth lookup failed: {e}")
            return ANONYMOUS

        if response.status_code != 200:
            self.logger.debug(f"Token rejected by auth provider: {response.status_code}")
            return ANONYMOUS

        user_id = response.json().get("id")
        if not user_id:
            return ANONYMOUS
        return Requester(user_id=user_id, role=await self._lookup_role(user_id))

    async def _lookup_role(self, user_id: str) -> Role:
        try:
            response = await self.client.get(
                f"{self.supabase_url}/rest/v1/user_roles",
                params={"user_id": f"eq.{user_id}", "select": "role"},
                headers={"apikey": self.api_key, "Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
            rows = response.json()
        except httpx.HTTPError as e:
            self.logger.error(f"Role lookup failed for {user_id}: {e}")
            return Role.USER

        if any(row.get("role") == Role.ADMIN.value for row in rows):
            return Role.ADMIN
        return Role.USER

    async def close(self) -> None:
        await self.client.aclose()
