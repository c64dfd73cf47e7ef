# storeadmin/auth.py

"""
Simulated admin authentication.
The hosted backend owns real accounts; here one admin login is configured
through ADMIN_EMAIL / ADMIN_PASSWORD and the signed-in user is held in memory.
"""

import hmac
import logging
from typing import Optional

from storeadmin.errors import NotAuthenticated
from storeadmin.state import SharedState

logger = logging.getLogger(__name__)


class AdminAuth:
    def __init__(self, state: SharedState, email: Optional[str], password: Optional[str]):
        self.state = state
        self._email = email
        self._password = password
        self.user: Optional[str] = None

    @property
    def is_signed_in(self) -> bool:
        return self.user is not None

    def require_user(self) -> str:
        if self.user is None:
            raise NotAuthenticated()
        return self.user

    def sign_in(self, email: str, password: str) -> str:
        if not self._email or not self._password:
            raise NotAuthenticated("No admin account is configured")
        if email.lower() != self._email.lower() or not hmac.compare_digest(password, self._password):
            logger.info("Rejected sign-in for %s", email)
            raise NotAuthenticated("Invalid login credentials")
        self.user = self._email
        logger.info("Signed in as %s", self.user)
        self.state.authenticated.send(user=self.user)
        return self.user

    def sign_out(self) -> None:
        previous, self.user = self.user, None
        logger.info("Signed out %s", previous or "(nobody)")
        # Every mounted view drops what it was showing
        self.state.signed_out.send()
