"""
Allowed signup email domains.

The domain list is configuration: defaults come from settings and are seeded
into the table on startup, and admins add or remove entries at runtime.
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import logging
import re
from typing import Iterable, List

from learnhub.core.database import commit_or_rollback
from learnhub.core.exceptions import ConflictError, NotFoundError, ValidationFailedError
from learnhub.models.email_domain_model import AllowedEmailDomain

logger = logging.getLogger(__name__)

_DOMAIN_RE = re.compile(r"^[a-z0-9](?:[a-z0-9\-]*[a-z0-9])?(?:\.[a-z0-9](?:[a-z0-9\-]*[a-z0-9])?)+$")


def normalize_domain(domain: str) -> str:
    normalized = domain.strip().lower().lstrip("@")
    if not _DOMAIN_RE.match(normalized):
        raise ValidationFailedError(f"'{domain}' is not a valid email domain.", code="invalid_domain")
    return normalized

def get_domain_rows(db: Session) -> List[AllowedEmailDomain]:
    return db.query(AllowedEmailDomain).order_by(AllowedEmailDomain.domain).all()

def list_domains(db: Session) -> List[str]:
    return [row.domain for row in get_domain_rows(db)]

def is_email_allowed(db: Session, email: str) -> bool:
    _, _, domain = email.rpartition("@")
    if not domain:
        return False
    return db.query(AllowedEmailDomain).filter(AllowedEmailDomain.domain == domain.lower()).first() is not None

def add_domain(db: Session, domain: str) -> AllowedEmailDomain:
    normalized = normalize_domain(domain)
    if db.query(AllowedEmailDomain).filter(AllowedEmailDomain.domain == normalized).first():
        raise ConflictError(f"Domain '{normalized}' is already allowed.", code="duplicate_domain")

    row = AllowedEmailDomain(domain=normalized)
    db.add(row)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError(f"Domain '{normalized}' is already allowed.", code="duplicate_domain") from e
    db.refresh(row)
    logger.info(f"Allowed email domain added: {normalized}")
    return row

def remove_domain(db: Session, domain: str) -> None:
    normalized = domain.strip().lower()
    row = db.query(AllowedEmailDomain).filter(AllowedEmailDomain.domain == normalized).first()
    if not row:
        raise NotFoundError(f"Domain '{normalized}' is not in the allowed list.")
    db.delete(row)
    commit_or_rollback(db, f"removing email domain {normalized}")
    logger.info(f"Allowed email domain removed: {normalized}")

def seed_default_domains(db: Session, domains: Iterable[str]) -> int:
    """Inserts any default domain missing from the table. Returns how many were added."""
    existing = set(list_domains(db))
    added = 0
    for domain in domains:
        normalized = domain.strip().lower()
        if normalized and normalized not in existing:
            db.add(AllowedEmailDomain(domain=normalized))
            existing.add(normalized)
            added += 1
    if added:
        commit_or_rollback(db, "seeding allowed email domains")
        logger.info(f"Seeded {added} allowed email domains.")
    return added
