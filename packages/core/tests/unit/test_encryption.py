"""Tests for EncryptionService."""

import os
from unittest.mock import patch

import pytest
from cryptography.fernet import Fernet

from apihub_applications.infrastructure.utils.encryption import EncryptionError, EncryptionService


class TestEncryptionService:
    """Tests for field encryption and fingerprints."""

    def test_round_trip_with_fernet_key(self) -> None:
        service = EncryptionService(Fernet.generate_key().decode())

        token = service.encrypt_text("jo.bloggs@example.com")

        assert token != "jo.bloggs@example.com"
        assert service.decrypt_text(token) == "jo.bloggs@example.com"

    def test_password_is_stretched_into_a_key(self) -> None:
        service = EncryptionService("a passphrase that is not a fernet key")

        assert service.decrypt_text(service.encrypt_text("value")) == "value"

    def test_tokens_differ_per_call(self) -> None:
        service = EncryptionService(Fernet.generate_key().decode())

        assert service.encrypt_text("same") != service.encrypt_text("same")

    def test_decrypt_with_other_key_fails(self) -> None:
        token = EncryptionService(Fernet.generate_key().decode()).encrypt_text("secret")

        with pytest.raises(EncryptionError):
            EncryptionService(Fernet.generate_key().decode()).decrypt_text(token)

    def test_fingerprint_is_stable_and_normalised(self) -> None:
        service = EncryptionService(Fernet.generate_key().decode())

        assert service.fingerprint(" Jo@Example.com") == service.fingerprint("jo@example.com")
        assert service.fingerprint("jo@example.com") != service.fingerprint("al@example.com")

    def test_fingerprint_depends_on_key(self) -> None:
        first = EncryptionService(Fernet.generate_key().decode())
        second = EncryptionService(Fernet.generate_key().decode())

        assert first.fingerprint("jo@example.com") != second.fingerprint("jo@example.com")

    def test_key_is_required_in_production(self) -> None:
        with patch.dict(os.environ, {"ENVIRONMENT": "production"}, clear=False):
            os.environ.pop("APIHUB_ENCRYPTION_KEY", None)
            with pytest.raises(EncryptionError):
                EncryptionService()

    def test_development_generates_key(self) -> None:
        with patch.dict(os.environ, {"ENVIRONMENT": "development"}, clear=False):
            os.environ.pop("APIHUB_ENCRYPTION_KEY", None)

            service = EncryptionService()

            assert os.environ["APIHUB_ENCRYPTION_KEY"]
            assert service.decrypt_text(service.encrypt_text("x")) == "x"
