from pydantic import BaseModel
from typing import Optional


class RefundRequest(BaseModel):
    reason: Optional[str] = None


class InitializePaymentResponse(BaseModel):
    reference: str
    authorization_url: str
    access_code: str
    amount: int
    currency: str
