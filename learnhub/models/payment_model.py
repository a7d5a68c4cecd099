from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey, TIMESTAMP, DECIMAL,
    Enum as SAEnum
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from learnhub.core.database import Base
from learnhub.models.enums import PaymentStatus, PaymentGateway

class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True) # User might be deleted, but payment record kept
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="SET NULL"), nullable=True, index=True)

    amount = Column(DECIMAL(10, 2), nullable=False)
    currency = Column(String(10), nullable=False, default="USD")

    status = Column(SAEnum(PaymentStatus, name="payment_status_enum", values_callable=lambda obj: [e.value for e in obj]),
                    nullable=False, default=PaymentStatus.PENDING, index=True)
    payment_gateway = Column(SAEnum(PaymentGateway, name="payment_gateway_enum", values_callable=lambda obj: [e.value for e in obj]),
                             nullable=False, default=PaymentGateway.STRIPE)

    tx_ref = Column(String(100), nullable=False, unique=True, index=True) # Our reference, echoed back by the gateway
    payment_intent_id = Column(String(255), nullable=True, unique=True, index=True) # Stripe pi_xxxx

    error_message = Column(Text, nullable=True)
    paid_at = Column(TIMESTAMP(timezone=True), nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="payments")
    course = relationship("Course")

    def __repr__(self):
        return f"<Payment(id={self.id}, user_id={self.user_id}, amount={self.amount} {self.currency}, status='{self.status}')>"
