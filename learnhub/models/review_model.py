from sqlalchemy import (
    Column, Integer, Text, ForeignKey, TIMESTAMP, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from learnhub.core.database import Base

class Review(Base):
    """A learner's rating of a course. Resubmitting replaces the earlier review."""
    __tablename__ = "course_reviews"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_review_user_course"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating_range"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    user = relationship("User")
    course = relationship("Course", back_populates="reviews")

    @property
    def reviewer_name(self) -> str:
        return self.user.display_name if self.user else "Former learner"

    def __repr__(self):
        return f"<Review(user_id={self.user_id}, course_id={self.course_id}, rating={self.rating})>"
