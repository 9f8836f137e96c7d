"""Supabase Auth identity provider."""

import logging
from dataclasses import dataclass

from supabase import Client

from job_tracker.services.identity import IdentityProvider

logger = logging.getLogger(__name__)


@dataclass
class SupabaseIdentityProvider(IdentityProvider):
    """Email/password sign-in through Supabase Auth."""

    client: Client

    def sign_in(self, email: str, password: str) -> str:
        """Sign in and return the user id."""
        try:
            response = self.client.auth.sign_in_with_password(
                {"email": email.strip(), "password": password}
            )
        except Exception as exc:
            logger.warning("Sign in failed for %s: %s", email, exc)
            raise RuntimeError("Invalid email or password") from exc
        if response.user is None:
            raise RuntimeError("Invalid email or password")
        return str(response.user.id)

    def sign_out(self) -> None:
        """Sign out of the current session."""
        self.client.auth.sign_out()

    def current_user_id(self) -> str | None:
        """Return the signed-in user id, if any."""
        response = self.client.auth.get_user()
        if response is None or response.user is None:
            return None
        return str(response.user.id)
