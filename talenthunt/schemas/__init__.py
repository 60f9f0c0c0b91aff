# talenthunt/schemas/__init__.py
from .auth import (
    RegisterRequest,
    EmailRequest,
    VerifyOTPRequest,
    SetPasswordRequest,
    ResetPasswordRequest,
    LoginRequest,
    AuthResponse,
)
from .bulk import CreateBulkRequest, AddParticipantRequest
from .payment import RefundRequest, InitializePaymentResponse
from .registration import CreateRegistrationRequest, ReviewRequest, STEP_MODELS
from .ticket import TicketCreate, TicketPurchaseRequest
from .vote import VoteIntentRequest

__all__ = [
    "RegisterRequest",
    "EmailRequest",
    "VerifyOTPRequest",
    "SetPasswordRequest",
    "ResetPasswordRequest",
    "LoginRequest",
    "AuthResponse",
    "CreateBulkRequest",
    "AddParticipantRequest",
    "RefundRequest",
    "InitializePaymentResponse",
    "CreateRegistrationRequest",
    "ReviewRequest",
    "STEP_MODELS",
    "TicketCreate",
    "TicketPurchaseRequest",
    "VoteIntentRequest",
]
