from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

class PlatformStatsOverview(BaseModel):
    total_users: int
    total_courses: int
    total_enrollments: int
    total_payments: int
    total_certificates: int
    total_revenue: Decimal = Field(..., description="Sum of succeeded payments")
    active_students: int = Field(..., description="Students holding at least one enrollment")
    active_instructors: int = Field(..., description="Instructors owning at least one course")

class CourseAnalyticsInfo(BaseModel):
    course_id: int
    course_title: str
    total_enrollments: int
    total_revenue: Decimal
    completed_enrollments: int
    completion_rate: float = Field(..., ge=0, le=100)
    average_progress: float = Field(..., ge=0, le=100)
    certificates_issued: int

class LessonAnalyticsInfo(BaseModel):
    lesson_id: int
    lesson_title: str
    module_id: int
    completions: int
    completion_rate: float = Field(..., ge=0, le=100, description="Completions over active enrollments")
    average_time_spent: float = Field(..., description="Minutes, over learners with a progress row")

class RecentEnrollmentInfo(BaseModel):
    enrollment_id: int
    user_id: int
    user_email: str
    course_id: int
    course_title: str
    progress: float
    enrolled_at: Optional[datetime] = None

class EmailDomainDisplay(BaseModel):
    domain: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class EmailDomainCreate(BaseModel):
    domain: str = Field(..., min_length=3, max_length=255)

class EmailDomainList(BaseModel):
    domains: List[str]
    count: int
