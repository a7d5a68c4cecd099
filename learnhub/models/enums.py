import enum

class UserRole(str, enum.Enum):
    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"

class QuestionType(str, enum.Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"
    CODING = "coding"

class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

class PaymentGateway(str, enum.Enum):
    STRIPE = "stripe"
    MANUAL = "manual" # For admin-recorded payments

# Enum columns are stored as VARCHAR of the enum values, e.g.
# Column(SAEnum(QuestionType, name="question_type_enum", values_callable=lambda obj: [e.value for e in obj]))
