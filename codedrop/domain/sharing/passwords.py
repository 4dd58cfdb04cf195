"""
Share Password Handling

Stores and checks share passwords. Hashed secrets use werkzeug's salted
password hashes; plaintext secrets are compared in constant time.
"""

import hmac
from typing import Optional, Tuple

from werkzeug.security import check_password_hash, generate_password_hash

from .value_objects import PasswordScheme


class PasswordHasher:
    """
    Produces stored secrets for new shares and verifies supplied passwords.

    The scheme used for a secret is stored alongside it on each record,
    so changing the configured scheme never invalidates existing codes.
    """

    def __init__(self, scheme: PasswordScheme = PasswordScheme.HASHED):
        self.scheme = scheme

    def make_secret(self, password: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
        """
        Turn a requested password into a stored secret.

        Args:
            password: Password from the share policy, None for no password

        Returns:
            Tuple of (secret, scheme value), both None when no password is set
        """
        if password is None:
            return None, None
        if self.scheme is PasswordScheme.HASHED:
            return generate_password_hash(password), self.scheme.value
        return password, self.scheme.value

    @staticmethod
    def verify(secret: str, scheme: Optional[str], supplied: Optional[str]) -> bool:
        """
        Check a supplied password against a stored secret.

        A missing supplied password is compared as the empty string.
        """
        supplied = supplied or ""
        if scheme == PasswordScheme.HASHED.value:
            return check_password_hash(secret, supplied)
        return hmac.compare_digest(secret.encode("utf-8"), supplied.encode("utf-8"))
