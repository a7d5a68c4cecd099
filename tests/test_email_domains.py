"""Tests for the allowed email domain store."""

import pytest
from sqlalchemy.orm import Session

from learnhub.core.exceptions import ConflictError, NotFoundError, ValidationFailedError
from learnhub.crud import email_domain_crud


class TestNormalizeDomain:
    """Tests for normalize_domain."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Example.COM", "example.com"),
            ("  @school.edu ", "school.edu"),
            ("aau.edu.et", "aau.edu.et"),
        ],
    )
    def test_normalizes(self, raw: str, expected: str) -> None:
        """Domains are trimmed, lowercased and stripped of a leading @."""
        assert email_domain_crud.normalize_domain(raw) == expected

    @pytest.mark.parametrize("raw", ["", "localhost", "not a domain", "bad..com"])
    def test_rejects_invalid(self, raw: str) -> None:
        """Strings that are not domains are a validation error."""
        with pytest.raises(ValidationFailedError):
            email_domain_crud.normalize_domain(raw)


class TestDomainStore:
    """Tests for add, remove, list and lookup."""

    def test_add_and_check(self, db_session: Session) -> None:
        """Added domains allow matching emails, case-insensitively."""
        email_domain_crud.add_domain(db_session, "Example.org")

        assert email_domain_crud.is_email_allowed(db_session, "someone@EXAMPLE.org") is True
        assert email_domain_crud.is_email_allowed(db_session, "someone@other.org") is False
        assert email_domain_crud.list_domains(db_session) == ["example.org"]

    def test_duplicate_is_conflict(self, db_session: Session) -> None:
        """A domain can only be added once."""
        email_domain_crud.add_domain(db_session, "example.org")
        with pytest.raises(ConflictError):
            email_domain_crud.add_domain(db_session, "EXAMPLE.ORG")

    def test_remove(self, db_session: Session) -> None:
        """Removed domains stop matching."""
        email_domain_crud.add_domain(db_session, "example.org")
        email_domain_crud.remove_domain(db_session, "example.org")

        assert email_domain_crud.is_email_allowed(db_session, "a@example.org") is False

    def test_remove_missing(self, db_session: Session) -> None:
        """Removing an unknown domain is not found."""
        with pytest.raises(NotFoundError):
            email_domain_crud.remove_domain(db_session, "nowhere.org")

    def test_email_without_domain(self, db_session: Session) -> None:
        """Malformed addresses are never allowed."""
        assert email_domain_crud.is_email_allowed(db_session, "no-at-sign") is False

    def test_seed_is_idempotent(self, db_session: Session) -> None:
        """Seeding twice only inserts missing domains."""
        assert email_domain_crud.seed_default_domains(db_session, ["gmail.com", "Edu.ET"]) == 2
        assert email_domain_crud.seed_default_domains(db_session, ["gmail.com", "yahoo.com"]) == 1
        assert email_domain_crud.list_domains(db_session) == ["edu.et", "gmail.com", "yahoo.com"]
