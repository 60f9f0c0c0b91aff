from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class CreateBulkRequest(BaseModel):
    total_slots: int = Field(..., alias="totalSlots")

    model_config = {"populate_by_name": True}


class AddParticipantRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50, alias="firstName")
    last_name: str = Field(..., min_length=1, max_length=50, alias="lastName")
    email: EmailStr
    phone_no: Optional[str] = Field(default=None, alias="phoneNo")

    model_config = {"populate_by_name": True}
