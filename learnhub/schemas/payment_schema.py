from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from decimal import Decimal

from learnhub.models.enums import PaymentStatus, PaymentGateway

class PaymentInitiateRequest(BaseModel):
    course_id: int

class PaymentInitiateResponse(BaseModel):
    tx_ref: str
    amount: Decimal
    currency: str
    status: PaymentStatus
    client_secret: Optional[str] = None # Stripe PaymentIntent client secret
    payment_intent_id: Optional[str] = None

class PaymentDisplay(BaseModel):
    id: int
    user_id: Optional[int] = None
    course_id: Optional[int] = None
    amount: Decimal
    currency: str
    status: PaymentStatus
    payment_gateway: PaymentGateway
    tx_ref: str
    payment_intent_id: Optional[str] = None
    error_message: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
