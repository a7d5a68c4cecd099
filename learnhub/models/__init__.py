# This file makes the 'models' directory a Python package.

from learnhub.core.database import Base # Base must be imported before models that use it

from .enums import UserRole, QuestionType, PaymentStatus, PaymentGateway

from .user_model import User
from .course_model import Course, CourseModule, Lesson
from .enrollment_model import Enrollment, LessonProgress
from .certificate_model import Certificate
from .quiz_model import Quiz, QuizQuestion, QuizAttempt, QuizAnswer
from .assignment_model import Assignment, AssignmentSubmission
from .payment_model import Payment
from .email_domain_model import AllowedEmailDomain
from .review_model import Review

__all__ = [
    "Base",
    # Models
    "User",
    "Course",
    "CourseModule",
    "Lesson",
    "Enrollment",
    "LessonProgress",
    "Certificate",
    "Quiz",
    "QuizQuestion",
    "QuizAttempt",
    "QuizAnswer",
    "Assignment",
    "AssignmentSubmission",
    "Payment",
    "AllowedEmailDomain",
    "Review",
    # Enums
    "UserRole",
    "QuestionType",
    "PaymentStatus",
    "PaymentGateway",
]
