"""Login credential check.

Routes only see ``CredentialVerifier``. Passwords are currently stored
and compared in plaintext; swapping in a hashing verifier only needs a
new implementation passed to ``create_app``.
"""

from __future__ import annotations

import hmac
from abc import ABC, abstractmethod

import structlog

from lostfound.models.db import User
from lostfound.store import UserStore

logger = structlog.get_logger()


class CredentialVerifier(ABC):
    @abstractmethod
    def verify(self, user: User, password: str) -> bool:
        """Return True if ``password`` is valid for ``user``."""


class PlaintextCredentialVerifier(CredentialVerifier):
    def verify(self, user: User, password: str) -> bool:
        return hmac.compare_digest(user.password.encode(), password.encode())


async def authenticate(
    users: UserStore,
    verifier: CredentialVerifier,
    username: str,
    password: str,
) -> User | None:
    user = await users.find_by_username(username)
    if user is None or not verifier.verify(user, password):
        logger.info("login_failed", username=username, known_user=user is not None)
        return None
    logger.info("login_succeeded", username=username, role=user.role)
    return user
