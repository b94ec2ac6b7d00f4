"""Tests for the User model."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from tokenvault.models.user import User


class TestUser:
    def test_password_hashing(self, session):
        u = User(email="Test@Example.com", name="Tester")
        u.password = "secret123"
        session.add(u)
        session.commit()
        assert u.verify_password("secret123") is True
        assert u.verify_password("wrong") is False
        assert "secret123" not in u.password_hash

    def test_password_is_write_only(self):
        u = User(email="a@example.com", name="A")
        u.password = "x"
        with pytest.raises(AttributeError):
            _ = u.password

    def test_empty_password_rejected(self):
        u = User(email="a@example.com", name="A")
        with pytest.raises(ValueError):
            u.password = ""

    def test_verify_without_hash_is_false(self):
        assert User(email="a@example.com", name="A").verify_password("x") is False

    def test_email_normalized_and_unique(self, session):
        u1 = User(email="  Alice@Example.com ", name="Alice")
        u1.password = "pw"
        session.add(u1)
        session.commit()
        assert u1.email == "alice@example.com"

        u2 = User(email="alice@example.com", name="Alice Two")
        u2.password = "pw"
        session.add(u2)
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    @pytest.mark.parametrize("email", ["", "no-at-sign", "user@localhost"])
    def test_malformed_email_rejected(self, email):
        with pytest.raises(ValueError):
            User(email=email, name="X")

    def test_blank_name_rejected(self):
        with pytest.raises(ValueError):
            User(email="n@example.com", name="   ")

    def test_defaults_after_insert(self, session):
        u = User(email="d@example.com", name=" Dana ")
        u.password = "pw"
        session.add(u)
        session.commit()

        assert u.name == "Dana"
        assert u.is_active is True
        assert len(u.id) == 36
        assert u.created_at is not None
