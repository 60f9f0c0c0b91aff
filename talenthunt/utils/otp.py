# talenthunt/utils/otp.py
from datetime import timezone
import secrets
import string

from talenthunt.config import settings
from talenthunt.utils.dates import utcnow


# -------------------- OTP GENERATOR --------------------
def generate_otp(length: int = None) -> str:
    """Generate a numeric OTP (OTP_LENGTH digits unless told otherwise)."""
    length = length or settings.OTP_LENGTH
    return "".join(secrets.choice(string.digits) for _ in range(length))


# -------------------- REFERENCES --------------------
def generate_reference(prefix: str, nbytes: int = 4) -> str:
    """Payment-style reference: PREFIX_<unix millis>_<HEX>."""
    millis = int(utcnow().replace(tzinfo=timezone.utc).timestamp() * 1000)
    return f"{prefix}_{millis}_{secrets.token_hex(nbytes).upper()}"


def generate_number(prefix: str, nbytes: int = 4) -> str:
    """Human-facing record number, e.g. TH-2026-1A2B3C4D."""
    return f"{prefix}-{utcnow().year}-{secrets.token_hex(nbytes).upper()}"
