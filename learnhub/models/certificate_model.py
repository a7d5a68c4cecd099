from sqlalchemy import Column, Integer, String, TIMESTAMP, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import secrets

from learnhub.core.database import Base

def generate_verification_code() -> str:
    """Short public token used to look a certificate up without authentication."""
    return secrets.token_hex(6).upper()

class Certificate(Base):
    __tablename__ = "certificates"

    id = Column(String(64), primary_key=True) # LHC-<enrollment_id>-<YYYYMMDD>
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    enrollment_id = Column(Integer, ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False)

    issue_date = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    expiry_date = Column(TIMESTAMP(timezone=True), nullable=True)
    verification_code = Column(String(32), nullable=False, index=True)
    certificate_url = Column(String(500), nullable=True)

    user = relationship("User", back_populates="certificates")
    course = relationship("Course")
    enrollment = relationship("Enrollment", back_populates="certificate")

    __table_args__ = (
        UniqueConstraint('enrollment_id', name='uq_certificate_enrollment'),
        UniqueConstraint('verification_code', name='uq_certificate_verification_code'),
    )

    def __repr__(self):
        return f"<Certificate(id='{self.id}', user_id={self.user_id}, course_id={self.course_id}, code='{self.verification_code}')>"
