import re
from dataclasses import dataclass

from .exceptions import ValidationError

COUNTRY_PREFIX = "254"
MISSING_FIELDS_MESSAGE = "Please provide phone, amount, and userId"
INVALID_AMOUNT_MESSAGE = "amount must be a positive whole number"

# Leading integer only; anything after the digits is ignored
_LEADING_INTEGER = re.compile(r"\s*(?P<sign>[+-]?)(?P<digits>[0-9]+)")
MAX_AMOUNT_DIGITS = 12


def normalize_phone(phone):
    """
    Convert a Kenyan phone number to the 2547XXXXXXXX form Daraja expects.

    Numbers already starting with 254 are used as-is. Anything else keeps its
    last 9 characters behind the 254 prefix, so "0712345678" and "712345678"
    both become "254712345678". Inputs shorter than 9 characters or holding
    spaces / a leading "+" come out malformed; callers get what they sent.
    """
    phone = str(phone)
    if phone.startswith(COUNTRY_PREFIX):
        return phone
    return f"{COUNTRY_PREFIX}{phone[-9:]}"


def parse_amount(raw_amount):
    """
    Coerce an amount to a positive whole number of shillings, the way
    parseInt reads it: strings keep only their leading integer part, so
    "10.9" pays 10 and "1e3" pays 1. Numbers are truncated.
    """
    if isinstance(raw_amount, bool):
        raise ValidationError(INVALID_AMOUNT_MESSAGE)

    if isinstance(raw_amount, (int, float)):
        try:
            amount = int(raw_amount)
        except (ValueError, OverflowError):
            raise ValidationError(INVALID_AMOUNT_MESSAGE)
    elif isinstance(raw_amount, str):
        match = _LEADING_INTEGER.match(raw_amount)
        if not match or len(match.group("digits").lstrip("0")) > MAX_AMOUNT_DIGITS:
            raise ValidationError(INVALID_AMOUNT_MESSAGE)
        amount = int(match.group("sign") + match.group("digits"))
    else:
        raise ValidationError(INVALID_AMOUNT_MESSAGE)

    if amount <= 0:
        raise ValidationError(INVALID_AMOUNT_MESSAGE)
    return amount


@dataclass(frozen=True)
class PaymentRequest:
    phone: str
    amount: int
    user_id: str

    @classmethod
    def from_payload(cls, payload):
        """
        Build a PaymentRequest from a /api/topup body: {phone, amount, userId}.
        """
        if not isinstance(payload, dict):
            raise ValidationError("payload must be a JSON object")

        phone = payload.get("phone")
        amount = payload.get("amount")
        user_id = payload.get("userId")

        if not phone or not amount or not user_id:
            raise ValidationError(MISSING_FIELDS_MESSAGE)

        return cls(
            phone=normalize_phone(phone),
            amount=parse_amount(amount),
            user_id=str(user_id),
        )
