from sqlalchemy import Column, Integer, String, TIMESTAMP
from sqlalchemy.sql import func

from learnhub.core.database import Base

class AllowedEmailDomain(Base):
    """Signup email domains; managed by admins instead of a hard-coded list."""
    __tablename__ = "allowed_email_domains"

    id = Column(Integer, primary_key=True, index=True)
    domain = Column(String(255), nullable=False, unique=True, index=True) # stored lowercase
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<AllowedEmailDomain(domain='{self.domain}')>"
