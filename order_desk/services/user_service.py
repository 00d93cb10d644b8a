# ==============================================================================
# USER SERVICE
# ==============================================================================
# Authentication for the two dashboard roles (admin, moderator).
#
# DEFAULT ACCOUNTS:
# admin@example.com (admin) and moderator@example.com (moderator) with the
# password DEFAULT_PASSWORD are created the first time they log in with
# that password. Any other unknown email is rejected.
# ==============================================================================

import logging
from typing import Any, Dict, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from order_desk.errors import AuthError, ValidationError
from order_desk.models.entities import UserRole
from order_desk.repositories.base import atomic, with_retry

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = 'Invalid email or password'


class UserService:
    """
    Login/logout and account lookups.

    Passwords are stored as werkzeug hashes only.
    """

    DEFAULT_ADMIN_EMAIL = 'admin@example.com'
    DEFAULT_MODERATOR_EMAIL = 'moderator@example.com'
    DEFAULT_PASSWORD = 'admin123'

    VALID_ROLES = frozenset(r.value for r in UserRole)

    def __init__(self, user_repo, audit_service=None):
        """
        Args:
            user_repo: IUserRepository
            audit_service: AuditService (optional)
        """
        self.user_repo = user_repo
        self.audit_service = audit_service

    def _default_role_for(self, email: str) -> Optional[str]:
        if email == self.DEFAULT_ADMIN_EMAIL:
            return UserRole.ADMIN.value
        if email == self.DEFAULT_MODERATOR_EMAIL:
            return UserRole.MODERATOR.value
        return None

    # =========================================================================
    # AUTHENTICATION
    # =========================================================================

    def authenticate(self, email: str, password: str, role: str) -> Dict[str, Any]:
        """
        Checks credentials for the requested role.

        Args:
            email: Login email (case-insensitive)
            password: Plain text password
            role: 'admin' or 'moderator'; must match the account's role

        Returns:
            {id, email, role}

        Raises:
            ValidationError: missing fields or invalid role
            AuthError: wrong credentials
        """
        for field, value in (('email', email), ('password', password), ('role', role)):
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"{field} must be a string", field)
        if not email or not password:
            raise ValidationError('Email and password are required', 'email')
        if role not in self.VALID_ROLES:
            raise ValidationError('Valid role (admin or moderator) is required', 'role')

        email = email.strip().lower()

        def run():
            with atomic():
                user = self.user_repo.get_user(email)
                if user is None:
                    if self._default_role_for(email) != role or password != self.DEFAULT_PASSWORD:
                        raise AuthError(INVALID_CREDENTIALS)
                    user = self.user_repo.create_user(email, generate_password_hash(password), role)
                    logger.info("Default account %s created on first login", email)
                elif user.role.value != role or not check_password_hash(user.password_hash, password):
                    raise AuthError(INVALID_CREDENTIALS)

                if self.audit_service:
                    self.audit_service.log_user_login(email)
                return user

        user = with_retry(run)
        return {'id': user.id, 'email': user.email, 'role': user.role.value}

    def logout(self, email: str) -> None:
        if self.audit_service and email:
            with atomic():
                self.audit_service.log_user_logout(email)

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def get_user(self, email: str) -> Optional[Dict[str, Any]]:
        """
        Returns:
            {id, email, role} without the password hash, or None
        """
        user = self.user_repo.get_user(email)
        if user is None:
            return None
        return {'id': user.id, 'email': user.email, 'role': user.role.value}
