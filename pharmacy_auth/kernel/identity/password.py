"""
Password hashing utilities using bcrypt.
"""

import asyncio
import secrets
import string
from typing import Optional

import bcrypt

from pharmacy_auth.kernel.identity.errors import HashingError

# Number of rounds for bcrypt hashing (12 is secure default)
BCRYPT_ROUNDS = 12


class PasswordHasher:
    """
    Password hashing service.

    bcrypt embeds a random salt in every hash, so hashing the same password
    twice gives different values; ``bcrypt.checkpw`` compares in constant time.
    The async variants run the CPU-bound work in a worker thread so the event
    loop keeps serving other calls.
    """

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        self.rounds = rounds
        self._dummy_hash: Optional[str] = None

    @staticmethod
    def _truncate_password(password: str) -> bytes:
        """
        Truncate password to 72 bytes (bcrypt limit) and encode.

        bcrypt only uses the first 72 bytes of a password.
        """
        return password.encode('utf-8')[:72]

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string

        Raises:
            HashingError: On any internal bcrypt failure
        """
        try:
            pwd_bytes = self._truncate_password(password)
            salt = bcrypt.gensalt(rounds=self.rounds)
            return bcrypt.hashpw(pwd_bytes, salt).decode('utf-8')
        except (ValueError, TypeError) as exc:
            raise HashingError("password hashing failed") from exc

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Raises:
            HashingError: If the stored hash is malformed
        """
        try:
            pwd_bytes = self._truncate_password(plain_password)
            return bcrypt.checkpw(pwd_bytes, hashed_password.encode('utf-8'))
        except (ValueError, TypeError) as exc:
            raise HashingError("password verification failed") from exc

    async def hash_async(self, password: str) -> str:
        return await asyncio.to_thread(self.hash, password)

    async def verify_async(self, plain_password: str, hashed_password: str) -> bool:
        return await asyncio.to_thread(self.verify, plain_password, hashed_password)

    async def prepare(self) -> None:
        """Build the dummy hash ahead of the first unknown-email login."""
        if self._dummy_hash is None:
            self._dummy_hash = await self.hash_async(secrets.token_urlsafe(16))

    async def verify_against_dummy(self, plain_password: str) -> bool:
        """
        Burn the same verification cost as a real check and return False.

        Used when no account matches, so unknown emails and wrong passwords
        take comparable time. Call ``prepare`` at startup so the first such
        login does not also pay for building the dummy hash.
        """
        await self.prepare()
        await self.verify_async(plain_password, self._dummy_hash)
        return False


PASSWORD_SYMBOLS = '!@#$%^&*(),.?":{}|<>'


def generate_random_password(length: int = 12) -> str:
    """
    Generate a random password that satisfies the strength policy.

    Always contains at least one uppercase letter, lowercase letter,
    digit and symbol.
    """
    if length < 8:
        raise ValueError("length must be at least 8")
    pools = [
        string.ascii_uppercase,
        string.ascii_lowercase,
        string.digits,
        PASSWORD_SYMBOLS,
    ]
    alphabet = "".join(pools)
    chars = [secrets.choice(pool) for pool in pools]
    chars += [secrets.choice(alphabet) for _ in range(length - len(chars))]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
