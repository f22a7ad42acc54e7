"""Administrative account provisioning on the identity platform."""

import logging
from datetime import datetime
from typing import List, Optional

import httpx

from .database.models import Account
from .errors import AccountError, NotFoundError


class SupabaseAccountAdmin:
    """Create, list and delete users through the Supabase Auth admin API.

    Needs the service-role key; never hand this object a user token.
    """

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.supabase_url = supabase_url.rstrip("/")
        self.service_key = service_key
        self.logger = logger or logging.getLogger(__name__)
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def _headers(self) -> dict:
        return {"apikey": self.service_key, "Authorization": f"Bearer {self.service_key}"}

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self.client.request(
                method, f"{self.supabase_url}{path}", headers=self._headers, **kwargs
            )
        except httpx.HTTPError as e:
            self.logger.error(f"Account admin call {method} {path} failed: {e}")
            raise AccountError(f"Identity platform unreachable: {e}")

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        return body.get("msg") or body.get("message") or body.get("error") or f"HTTP {response.status_code}"

    async def create_user(self, email: str, password: str, username: Optional[str] = None) -> Account:
        """Create a confirmed user account."""
        self.logger.info(f"Creating user with email: {email}")
        response = await self._request(
            "POST",
            "/auth/v1/admin/users",
            json={
                "email": email,
                "password": password,
                "user_metadata": {"username": username},
                "email_confirm": True,
            },
        )
        if response.status_code not in (200, 201):
            message = self._error_message(response)
            self.logger.error(f"Auth error creating {email}: {message}")
            raise AccountError(message, details={"status": response.status_code})

        account = self._to_account(response.json())
        self.logger.info(f"User created successfully: {account.id}")
        return account

    async def list_users(self) -> List[Account]:
        response = await self._request("GET", "/auth/v1/admin/users", params={"per_page": 1000})
        if response.status_code != 200:
            raise AccountError(self._error_message(response), details={"status": response.status_code})

        accounts = [self._to_account(user) for user in response.json().get("users", [])]
        admins = await self._admin_ids()
        for account in accounts:
            account.role = "admin" if account.id in admins else "user"
        return accounts

    async def delete_user(self, user_id: str) -> None:
        response = await self._request("DELETE", f"/auth/v1/admin/users/{user_id}")
        if response.status_code == 404:
            raise NotFoundError(f"User '{user_id}' not found")
        if response.status_code not in (200, 204):
            raise AccountError(self._error_message(response), details={"status": response.status_code})
        self.logger.info(f"Deleted user {user_id}")

    async def _admin_ids(self) -> set:
        response = await self._request(
            "GET", "/rest/v1/user_roles", params={"role": "eq.admin", "select": "user_id"}
        )
        if response.status_code != 200:
            self.logger.warning(f"Could not load roles: {response.status_code}")
            return set()
        return {row["user_id"] for row in response.json()}

    @staticmethod
    def _to_account(user: dict) -> Account:
        created_at = user.get("created_at")
        return Account(
            id=user["id"],
            email=user.get("email") or "",
            username=(user.get("user_metadata") or {}).get("username"),
            created_at=datetime.fromisoformat(created_at.replace("Z", "+00:00")) if created_at else None,
        )

    async def close(self) -> None:
        await self.client.aclose()
