# talenthunt/routes/auth.py
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session
import logging

from talenthunt.auth.dependencies import get_current_user
from talenthunt.database import get_db
from talenthunt.models.user import User
from talenthunt.models.verification_code import EMAIL_VERIFICATION, PASSWORD_RESET
from talenthunt.schemas.auth import (
    AuthResponse,
    EmailRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SetPasswordRequest,
    VerifyOTPRequest,
)
from talenthunt.services import code_issuer, identity_service
from talenthunt.services.email_service import EmailDispatcher, get_email_dispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(
    payload: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    user, issued = identity_service.register(db, payload.first_name, payload.last_name, payload.email)
    background_tasks.add_task(dispatcher.send_code, user.email, issued.code, EMAIL_VERIFICATION, user.first_name)
    return AuthResponse(
        message="Registration started. Check your email for the verification OTP.",
        data={"user": user.to_dict(), "otp_expires_at": issued.expires_at.isoformat()},
    )


@router.post("/verify-otp", response_model=AuthResponse)
def verify_otp(payload: VerifyOTPRequest, db: Session = Depends(get_db)):
    user = identity_service.verify_email(db, payload.email, payload.otp)
    return AuthResponse(message="Email verified successfully", data={"user": user.to_dict()})


@router.post("/set-password", response_model=AuthResponse)
def set_password(payload: SetPasswordRequest, db: Session = Depends(get_db)):
    user, token = identity_service.set_password(db, payload.email, payload.password)
    return AuthResponse(message="Password set successfully", data={"token": token, "user": user.to_dict()})


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user, token = identity_service.login(db, payload.email, payload.password)
    logger.info(f"🔐 Login: {user.email}")
    return AuthResponse(message="Login successful", data={"token": token, "user": user.to_dict()})


@router.post("/forgot-password", response_model=AuthResponse)
def forgot_password(
    payload: EmailRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    issued = identity_service.forgot_password(db, payload.email)
    if issued is not None:
        background_tasks.add_task(dispatcher.send_code, code_issuer.normalize_email(payload.email), issued.code, PASSWORD_RESET)
    return AuthResponse(message=identity_service.FORGOT_PASSWORD_MESSAGE)


@router.post("/verify-reset-otp", response_model=AuthResponse)
def verify_reset_otp(payload: VerifyOTPRequest, db: Session = Depends(get_db)):
    identity_service.verify_reset_code(db, payload.email, payload.otp)
    return AuthResponse(message="OTP is valid")


@router.post("/reset-password", response_model=AuthResponse)
def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)):
    identity_service.reset_password(db, payload.email, payload.otp, payload.password)
    return AuthResponse(message="Password reset successfully. You can now log in.")


@router.post("/resend-otp", response_model=AuthResponse)
def resend_otp(
    payload: EmailRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    user, issued = identity_service.resend_code(db, payload.email)
    purpose = code_issuer.detect_purpose(user)
    background_tasks.add_task(dispatcher.send_code, user.email, issued.code, purpose, user.first_name)
    return AuthResponse(message="A new OTP has been sent", data={"purpose": purpose})


@router.get("/me", response_model=AuthResponse)
def me(current_user: User = Depends(get_current_user)):
    return AuthResponse(message="Current user", data={"user": current_user.to_dict()})
