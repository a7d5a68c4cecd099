# This file makes the 'schemas' directory a Python package.

from .user_schema import (
    UserBase, UserCreateInternal, UserDisplay, TokenData,
    UserRegisterRequest, UserUpdate, AdminRoleUpdate, AdminUserStatusUpdate, AuthResponse
)

from .course_schema import (
    LessonBase, LessonCreate, LessonUpdate, LessonDisplay,
    CourseModuleBase, CourseModuleCreate, CourseModuleDisplay,
    CourseBase, CourseCreate, CourseUpdate, CourseDisplay, CourseDetailDisplay
)

from .enrollment_schema import (
    EnrollmentDisplay, LessonProgressUpdate, LessonTimeUpdate, LessonProgressDisplay,
    ProgressUpdateResponse, CourseProgressDetail, RecentActivity, StudentDashboard
)

from .certificate_schema import (
    CertificateDisplay, CertificatePublicView, CertificateVerification
)

from .quiz_schema import (
    QuizQuestionBase, QuizQuestionCreate, QuizQuestionPublic, QuizQuestionInstructor,
    QuizBase, QuizCreate, QuizUpdate, QuizSummary, QuizPublic, QuizInstructorView,
    QuizAttemptDisplay, QuizStartResponse, AnswerSubmit, AnswerAck, AnswerResult, QuizResult
)

from .assignment_schema import (
    AssignmentBase, AssignmentCreate, AssignmentUpdate, AssignmentDisplay,
    SubmissionDisplay, GradeSubmission
)

from .payment_schema import (
    PaymentInitiateRequest, PaymentInitiateResponse, PaymentDisplay
)

from .admin_schema import (
    PlatformStatsOverview, CourseAnalyticsInfo, LessonAnalyticsInfo, RecentEnrollmentInfo,
    EmailDomainDisplay, EmailDomainCreate, EmailDomainList
)

from .review_schema import (
    ReviewCreate, ReviewDisplay, CourseReviews
)
