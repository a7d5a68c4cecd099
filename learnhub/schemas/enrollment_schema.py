from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

class EnrollmentDisplay(BaseModel):
    id: int
    user_id: int
    course_id: int
    is_active: bool
    progress: float
    total_lessons: int
    completed_lessons: int
    time_spent: int = Field(..., description="Cumulative minutes across all lessons")
    current_module_id: Optional[int] = None
    current_lesson_id: Optional[int] = None
    certificate_id: Optional[str] = None
    certificate_issued_at: Optional[datetime] = None
    enrolled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class LessonProgressUpdate(BaseModel):
    lesson_id: int
    time_spent: int = Field(0, ge=0, description="Minutes spent since the last update; always added to the stored total")
    completed: bool = False

class LessonTimeUpdate(BaseModel):
    time_spent: int = Field(..., ge=0, description="Minutes spent since the last update")

class LessonProgressDisplay(BaseModel):
    id: int
    user_id: int
    lesson_id: int
    course_id: int
    completed: bool
    completed_at: Optional[datetime] = None
    time_spent: int
    last_accessed_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProgressUpdateResponse(BaseModel):
    message: str
    lesson_progress: LessonProgressDisplay
    enrollment: EnrollmentDisplay
    course_completed: bool = Field(False, description="True only on the write that first completed the course")

class CourseProgressDetail(BaseModel):
    course_id: int
    course_title: str
    progress: float
    total_lessons: int
    completed_lessons: int
    remaining_lessons: int
    time_spent_minutes: int
    time_spent_hours: float
    completed_at: Optional[datetime] = None
    certificate_id: Optional[str] = None
    lessons: List[LessonProgressDisplay] = []

class RecentActivity(BaseModel):
    lesson_id: int
    lesson_title: str
    course_id: int
    completed: bool
    time_spent: int
    last_accessed_at: Optional[datetime] = None

class StudentDashboard(BaseModel):
    total_enrollments: int
    completed_courses: int
    in_progress_courses: int
    total_learning_minutes: int
    average_progress: float
    certificates_earned: int
    recent_activity: List[RecentActivity] = []
