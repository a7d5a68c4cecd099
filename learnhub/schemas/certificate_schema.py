from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class CertificateDisplay(BaseModel):
    id: str
    user_id: int
    course_id: int
    enrollment_id: int
    issue_date: datetime
    expiry_date: Optional[datetime] = None
    verification_code: str
    certificate_url: Optional[str] = None

    class Config:
        from_attributes = True

class CertificatePublicView(BaseModel):
    id: str
    student_name: str
    course_title: str
    issue_date: str # e.g. "January 2, 2026"
    verification_code: str

class CertificateVerification(BaseModel):
    valid: bool
    certificate: Optional[CertificatePublicView] = None
