"""Encryption utilities for sensitive fields stored at rest."""

import os
from base64 import b64encode

from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC


class EncryptionError(Exception):
    """Raised when encryption/decryption operations fail."""

    pass


class EncryptionService:
    """Service for encrypting and decrypting sensitive text fields.

    Uses Fernet (symmetric encryption) for emails, user identities, supporting
    information and rejection reasons. Fernet tokens differ on every call, so
    `fingerprint` provides a keyed, deterministic digest for fields that must
    be searched (team member emails, event users).
    """

    def __init__(self, encryption_key: str | None = None) -> None:
        """Initialize EncryptionService with encryption key.

        Args:
            encryption_key: Optional encryption key string. If None, loads from
                environment variable APIHUB_ENCRYPTION_KEY. In development mode
                (ENVIRONMENT != 'production'), generates a key if not provided.

        Raises:
            EncryptionError: If encryption key is not provided and not in environment,
                and we're in production mode.
        """
        if encryption_key is None:
            encryption_key = os.getenv("APIHUB_ENCRYPTION_KEY")
            if not encryption_key:
                environment = os.getenv("ENVIRONMENT", os.getenv("ENV", "development")).lower()
                if environment == "production":
                    raise EncryptionError(
                        "APIHUB_ENCRYPTION_KEY environment variable is required for encryption in production"
                    )
                # Development mode: generate a key for this process only
                encryption_key = Fernet.generate_key().decode()
                os.environ["APIHUB_ENCRYPTION_KEY"] = encryption_key

        self._fernet_key = self._get_fernet_key(encryption_key)
        self._fernet = Fernet(self._fernet_key)

    def _get_fernet_key(self, key_str: str) -> bytes:
        """Get Fernet key from string (either direct Fernet key or password).

        Args:
            key_str: Encryption key string (Fernet key or password).

        Returns:
            Fernet key as bytes.
        """
        # A 44 character string is taken to be a base64 Fernet key already
        if len(key_str) == 44:
            return key_str.encode()

        salt = os.getenv("APIHUB_ENCRYPTION_SALT", "api-hub-applications-salt").encode()
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=100000,
        )
        key = kdf.derive(key_str.encode())
        return b64encode(key)

    def encrypt_text(self, plain_text: str) -> str:
        """Encrypt a text value.

        Args:
            plain_text: Value to encrypt.

        Returns:
            Fernet token as a string.

        Raises:
            EncryptionError: If encryption fails.
        """
        try:
            return self._fernet.encrypt(plain_text.encode()).decode()
        except Exception as e:
            raise EncryptionError(f"Failed to encrypt value: {e}") from e

    def decrypt_text(self, token: str) -> str:
        """Decrypt a value produced by `encrypt_text`.

        Raises:
            EncryptionError: If the token is invalid or was encrypted with another key.
        """
        try:
            return self._fernet.decrypt(token.encode()).decode()
        except Exception as e:
            raise EncryptionError(f"Failed to decrypt value: {e}") from e

    def fingerprint(self, value: str) -> str:
        """Keyed SHA-256 digest of a value, used as a searchable index."""
        digest = hmac.HMAC(self._fernet_key, hashes.SHA256())
        digest.update(value.strip().lower().encode())
        return digest.finalize().hex()
