"""Identity provider interface."""

from typing import Protocol


class IdentityProvider(Protocol):
    """Authenticates technicians and exposes the signed-in user."""

    def sign_in(self, email: str, password: str) -> str:
        """Sign in and return the user id."""

    def sign_out(self) -> None:
        """Sign the current user out."""

    def current_user_id(self) -> str | None:
        """Return the signed-in user id, if any."""
