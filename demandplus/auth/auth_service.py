# Authentication logic
import hashlib
import hmac
import os
import time
from enum import Enum
from typing import Dict, Optional, Tuple


class Role(str, Enum):
    ADMIN = "ADMIN"
    VIEWER = "VIEWER"


class AuthService:
    """
    A service class for access-code login.

    Each role has one access code. Codes are kept only as salted hashes and
    compared in constant time.
    """

    def __init__(self, admin_code: str, viewer_code: str, session_timeout_minutes: int = 30):
        """
        Initializes the AuthService.

        Args:
            admin_code (str): Access code granting the ADMIN role.
            viewer_code (str): Access code granting the read-only VIEWER role.
            session_timeout_minutes (int): Inactivity window before logout.
        """
        self.session_timeout_minutes = session_timeout_minutes
        self._codes: Dict[Role, Tuple[bytes, bytes]] = {}
        for role, code in ((Role.ADMIN, admin_code), (Role.VIEWER, viewer_code)):
            if code:
                self._codes[role] = self._hash_code(code)

    def _hash_code(self, code: str, salt: Optional[bytes] = None) -> Tuple[bytes, bytes]:
        """Hashes an access code with a salt."""
        if salt is None:
            salt = os.urandom(16)
        return hashlib.pbkdf2_hmac('sha256', code.encode('utf-8'), salt, 100000), salt

    def _check_code(self, stored_hash: bytes, salt: bytes, provided_code: str) -> bool:
        return hmac.compare_digest(stored_hash, self._hash_code(provided_code, salt)[0])

    def login(self, access_code: str) -> Optional[Role]:
        """
        Resolves an access code to its role.

        Returns:
            Optional[Role]: The role if the code matches, otherwise None.
        """
        if not access_code:
            return None
        for role, (stored_hash, salt) in self._codes.items():
            if self._check_code(stored_hash, salt, access_code.strip()):
                return role
        return None

    def is_session_expired(self, last_activity: float, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return now - last_activity > self.session_timeout_minutes * 60


def can_edit(role: Optional[Role]) -> bool:
    return role == Role.ADMIN
