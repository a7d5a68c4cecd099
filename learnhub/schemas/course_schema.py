from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

# --- Lesson ---
class LessonBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: Optional[str] = None
    video_url: Optional[str] = Field(None, max_length=500)
    duration_minutes: int = Field(0, ge=0)
    position: int = Field(0, ge=0)
    is_preview: bool = False

class LessonCreate(LessonBase):
    pass

class LessonUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None
    video_url: Optional[str] = Field(None, max_length=500)
    duration_minutes: Optional[int] = Field(None, ge=0)
    position: Optional[int] = Field(None, ge=0)
    is_preview: Optional[bool] = None

class LessonDisplay(LessonBase):
    id: int
    module_id: int
    course_id: int

    class Config:
        from_attributes = True

# --- Module ---
class CourseModuleBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    position: int = Field(0, ge=0)

class CourseModuleCreate(CourseModuleBase):
    pass

class CourseModuleDisplay(CourseModuleBase):
    id: int
    course_id: int
    lessons: List[LessonDisplay] = []

    class Config:
        from_attributes = True

# --- Course ---
class CourseBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(Decimal("0.00"), ge=0, decimal_places=2)
    currency: str = Field("USD", min_length=3, max_length=10)

class CourseCreate(CourseBase):
    is_published: bool = False

class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=10)
    is_published: Optional[bool] = None

class CourseDisplay(CourseBase):
    id: int
    instructor_id: Optional[int] = None
    is_published: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class CourseDetailDisplay(CourseDisplay):
    modules: List[CourseModuleDisplay] = []
