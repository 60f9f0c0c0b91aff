from pydantic import BaseModel, EmailStr, Field
from typing import List, Literal, Optional

TicketType = Literal["regular", "vip", "table_of_5", "table_of_10"]


class TicketCreate(BaseModel):
    ticket_type: TicketType = Field(..., alias="ticketType")
    name: str
    price: int = Field(..., gt=0)
    description: Optional[str] = None
    available_quantity: Optional[int] = Field(default=None, ge=0, alias="availableQuantity")
    is_active: bool = Field(default=True, alias="isActive")

    model_config = {"populate_by_name": True}


class TicketLine(BaseModel):
    ticket_type: TicketType = Field(..., alias="ticketType")
    quantity: int = Field(..., ge=1)

    model_config = {"populate_by_name": True}


class TicketPurchaseRequest(BaseModel):
    first_name: str = Field(..., min_length=1, alias="firstName")
    last_name: str = Field(..., min_length=1, alias="lastName")
    email: EmailStr
    phone: Optional[str] = None
    tickets: List[TicketLine] = Field(..., min_length=1)

    model_config = {"populate_by_name": True}
