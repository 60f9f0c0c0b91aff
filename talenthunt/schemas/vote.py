from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class VoterInfo(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None


class VoteIntentRequest(BaseModel):
    number_of_votes: int = Field(..., ge=1, alias="numberOfVotes")
    amount_paid: int = Field(..., gt=0, alias="amountPaid")
    payment_reference: Optional[str] = Field(default=None, alias="paymentReference")
    voter_info: Optional[VoterInfo] = Field(default=None, alias="voterInfo")

    model_config = {"populate_by_name": True}
