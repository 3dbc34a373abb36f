"""
Session validation against the auth provider (Supabase) and an in-memory double.

Sign-up, sign-in and token issuance stay with the provider; this service only
resolves an access token to a user and an email to a user id.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import requests

from shared.types import User

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10  # seconds
ADMIN_USERS_PAGE_SIZE = 1000


class AuthClient(Protocol):
    """What the API needs from the auth provider."""

    def get_user(self, access_token: str) -> Optional[User]:
        ...

    def find_user_id_by_email(self, email: str) -> Optional[str]:
        ...


@dataclass
class InMemoryAuthClient:
    """Test double keyed by access token."""

    users_by_token: Dict[str, User] = field(default_factory=dict)

    def add_user(
        self, email: str, user_id: str | None = None, token: str | None = None
    ) -> str:
        """Register a user and return an access token for it."""
        user = User(id=user_id or uuid.uuid4().hex, email=email.lower())
        token = token or uuid.uuid4().hex
        self.users_by_token[token] = user
        return token

    def get_user(self, access_token: str) -> Optional[User]:
        return self.users_by_token.get(access_token)

    def find_user_id_by_email(self, email: str) -> Optional[str]:
        email = email.lower()
        for user in self.users_by_token.values():
            if user.email == email:
                return user.id
        return None


@dataclass
class SupabaseAuthClient:
    """
    Talks to the Supabase GoTrue REST API.

    Looking users up by email needs the service role key; without it every
    invite stays pending until the invitee signs in and links it.
    """

    url: str
    anon_key: str
    service_role_key: Optional[str] = None
    timeout: float = REQUEST_TIMEOUT

    def __post_init__(self):
        self.url = self.url.rstrip("/")
        self._session = requests.Session()

    def get_user(self, access_token: str) -> Optional[User]:
        response = self._session.get(
            f"{self.url}/auth/v1/user",
            headers={
                "apikey": self.anon_key,
                "Authorization": f"Bearer {access_token}",
            },
            timeout=self.timeout,
        )
        if response.status_code in (401, 403):
            return None
        response.raise_for_status()
        payload = response.json()
        if not payload.get("id"):
            return None
        email = payload.get("email")
        return User(id=payload["id"], email=email.lower() if email else None)

    def find_user_id_by_email(self, email: str) -> Optional[str]:
        if not self.service_role_key:
            logger.warning("No service role key, cannot look up %s", email)
            return None
        email = email.lower()
        headers = {
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
        }
        page = 1
        while True:
            try:
                response = self._session.get(
                    f"{self.url}/auth/v1/admin/users",
                    params={"page": page, "per_page": ADMIN_USERS_PAGE_SIZE},
                    headers=headers,
                    timeout=self.timeout,
                )
                response.raise_for_status()
                users = response.json().get("users") or []
            except (requests.RequestException, ValueError) as e:
                logger.warning("User lookup for %s failed: %s", email, e)
                return None
            for user in users:
                if (user.get("email") or "").lower() == email:
                    return user.get("id")
            if len(users) < ADMIN_USERS_PAGE_SIZE:
                return None
            page += 1
