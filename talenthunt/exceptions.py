"""Error taxonomy shared by the services and the HTTP layer.

Every error is an ``HTTPException`` carrying a fixed status code, so a service
can raise it and FastAPI renders it without per-route mapping. Extra context
(missing steps, the offending reference) is kept on the exception and also
placed in ``detail`` when the caller needs it.
"""
from typing import Any, Optional

from fastapi import HTTPException, status


class TalentHuntError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: Any = None, headers: Optional[dict] = None):
        super().__init__(
            status_code=type(self).status_code,
            detail=detail if detail is not None else self.default_detail,
            headers=headers,
        )

    @property
    def message(self) -> str:
        if isinstance(self.detail, dict):
            return str(self.detail.get("message", self.default_detail))
        return str(self.detail)


# -------------------- 4xx --------------------
class ValidationError(TalentHuntError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class AuthenticationError(TalentHuntError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Could not validate credentials"


class PermissionDenied(TalentHuntError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied"


class NotFoundError(TalentHuntError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ConflictError(TalentHuntError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Request conflicts with the current state"


class InvalidCode(ValidationError):
    default_detail = "Invalid or expired OTP"


class StepValidationError(ValidationError):
    def __init__(self, step: int, field: str, message: Optional[str] = None):
        self.step = step
        self.field = field
        super().__init__({
            "message": message or f"'{field}' is required for step {step}",
            "step": step,
            "field": field,
        })


class WorkflowIncomplete(ValidationError):
    def __init__(self, missing_steps: list[int], payment_missing: bool):
        self.missing_steps = missing_steps
        self.payment_missing = payment_missing
        parts = []
        if missing_steps:
            parts.append("complete steps " + ", ".join(str(s) for s in missing_steps))
        if payment_missing:
            parts.append("complete payment")
        super().__init__({
            "message": "Please " + " and ".join(parts) + " before submission",
            "missing_steps": missing_steps,
            "payment_missing": payment_missing,
        })


class WorkflowTerminal(ConflictError):
    default_detail = "Cannot update a submitted registration"


class PoolNotActive(ConflictError):
    default_detail = "Bulk registration is not active or payment not completed"


class PoolExhausted(ConflictError):
    default_detail = "No available slots remaining"


class TicketsUnavailable(ConflictError):
    default_detail = "Insufficient tickets available"


class UnknownReference(NotFoundError):
    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"Payment reference {reference} not found")


# -------------------- upstream / fatal --------------------
class AmbiguousUpstreamError(TalentHuntError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Payment gateway returned an unrecognised result"


class AmbiguousGatewayStatus(AmbiguousUpstreamError):
    def __init__(self, reference: Optional[str], reason: str):
        self.reference = reference
        self.reason = reason
        super().__init__({
            "message": "Payment outcome held for manual review",
            "reference": reference,
            "reason": reason,
        })


class FatalInconsistencyError(TalentHuntError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Data inconsistency detected"


class SubjectNotFound(FatalInconsistencyError):
    def __init__(self, reference: str, subject_type: str, subject_id: Optional[str]):
        self.reference = reference
        self.subject_type = subject_type
        self.subject_id = subject_id
        super().__init__({
            "message": "Payment points to a record that no longer exists",
            "reference": reference,
            "subject_type": subject_type,
            "subject_id": subject_id,
        })
