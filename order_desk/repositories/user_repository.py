# ==============================================================================
# USER REPOSITORY
# ==============================================================================
# Encapsulates all access to users.json
# Users are stored as a dict keyed by lower-cased email:
# {email: {id, email, password, role, created_at}}
# ==============================================================================

import os
from typing import Optional

from order_desk.models.entities import User, UserRole
from .base import DictRepository


class UserRepository(DictRepository):
    """
    Dashboard accounts.

    Data format in users.json:
    {
        "admin@example.com": {"id": 1, "password": "hashed_pwd", "role": "admin"}
    }
    """

    def __init__(self, base_path: str):
        """
        Args:
            base_path: Data directory
        """
        super().__init__(os.path.join(base_path, 'users.json'))

    def get_user(self, email: str) -> Optional[User]:
        """
        Args:
            email: Login email (case-insensitive)

        Returns:
            User or None
        """
        data = self.get_all().get((email or '').strip().lower())
        return User.from_dict(data) if data else None

    def create_user(self, email: str, password_hash: str, role: str = UserRole.MODERATOR.value) -> User:
        """
        Creates an account. An existing email is overwritten.

        Returns:
            The stored user
        """
        email = email.strip().lower()
        with self._file_lock:
            users = self.get_all()
            ids = [u.get('id', 0) for u in users.values()]
            user = User(
                id=max(ids + [0]) + 1,
                email=email,
                password_hash=password_hash,
                role=UserRole(role),
            )
            users[email] = user.to_dict()
            self.save_all(users)
        return user
