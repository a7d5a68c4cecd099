# This file makes the 'crud' directory a Python package.
# Modules are imported by name, e.g. `from learnhub.crud import quiz_crud`.

from . import (
    user_crud,
    email_domain_crud,
    course_crud,
    enrollment_crud,
    lesson_progress_crud,
    certificate_crud,
    quiz_crud,
    assignment_crud,
    payment_crud,
    review_crud,
    analytics_crud,
)

__all__ = [
    "user_crud",
    "email_domain_crud",
    "course_crud",
    "enrollment_crud",
    "lesson_progress_crud",
    "certificate_crud",
    "quiz_crud",
    "assignment_crud",
    "payment_crud",
    "review_crud",
    "analytics_crud",
]
