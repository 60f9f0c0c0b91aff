# talenthunt/models/__init__.py

from .user import User
from .verification_code import VerificationCode
from .bulk_registration import BulkRegistration, BulkParticipant
from .registration import Registration, RegistrationStep
from .payment import PaymentTransaction, SubjectType
from .contestant import Contestant
from .vote import Vote
from .ticket import Ticket, TicketPurchase

__all__ = [
    "User",
    "VerificationCode",
    "BulkRegistration",
    "BulkParticipant",
    "Registration",
    "RegistrationStep",
    "PaymentTransaction",
    "SubjectType",
    "Contestant",
    "Vote",
    "Ticket",
    "TicketPurchase",
]
