from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class AssignmentBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    module_id: Optional[int] = None
    due_date: Optional[datetime] = None
    max_points: int = Field(100, gt=0)

class AssignmentCreate(AssignmentBase):
    is_published: bool = False

class AssignmentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    due_date: Optional[datetime] = None
    max_points: Optional[int] = Field(None, gt=0)
    is_published: Optional[bool] = None

class AssignmentDisplay(AssignmentBase):
    id: int
    course_id: int
    is_published: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class SubmissionDisplay(BaseModel):
    id: int
    assignment_id: int
    user_id: int
    file_url: Optional[str] = None
    submission_text: Optional[str] = None
    submitted_at: datetime
    grade: Optional[float] = None
    feedback: Optional[str] = None
    is_graded: bool
    graded_at: Optional[datetime] = None
    graded_by_id: Optional[int] = None

    class Config:
        from_attributes = True

# Range against max_points is checked in the crud layer, where the assignment is known
class GradeSubmission(BaseModel):
    grade: float
    feedback: Optional[str] = None
