from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)

class ReviewDisplay(BaseModel):
    id: int
    course_id: int
    user_id: int
    reviewer_name: str
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class CourseReviews(BaseModel):
    course_id: int
    review_count: int
    average_rating: Optional[float] = None # None until the first review
    reviews: List[ReviewDisplay]
