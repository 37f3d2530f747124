"""
Parsing and handling of the STK push result Safaricom posts to CallBackURL.

Expected body:
    {"Body": {"stkCallback": {"MerchantRequestID": ..., "CheckoutRequestID": ...,
        "ResultCode": 0, "ResultDesc": ...,
        "CallbackMetadata": {"Item": [{"Name": ..., "Value": ...}, ...]}}}}

CallbackMetadata is only sent when ResultCode is 0.
"""
import datetime
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .exceptions import CallbackParseError

logger = logging.getLogger(__name__)

_RESULT_CODE = re.compile(r"-?[0-9]{1,10}")


def fold_metadata(items):
    """
    Turn [{"Name": n, "Value": v}, ...] into {n: v}.
    Later items overwrite earlier ones with the same name. Items with no
    Name are skipped; a missing Value maps to None.
    """
    metadata = {}
    for item in items or []:
        if not isinstance(item, dict) or "Name" not in item:
            continue
        metadata[item["Name"]] = item.get("Value")
    return metadata


@dataclass(frozen=True)
class CallbackResult:
    result_code: int
    result_desc: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    merchant_request_id: Optional[str] = None
    checkout_request_id: Optional[str] = None
    has_metadata: bool = False

    @property
    def succeeded(self):
        return self.result_code == 0

    @property
    def amount(self):
        return self.metadata.get("Amount")

    @property
    def phone_number(self):
        return self.metadata.get("PhoneNumber")

    @property
    def receipt_number(self):
        return self.metadata.get("MpesaReceiptNumber")

    @property
    def transaction_date(self):
        # Daraja sends TransactionDate as a YYYYMMDDHHmmss number
        raw_date = self.metadata.get("TransactionDate")
        if raw_date is None:
            return None
        try:
            return datetime.datetime.strptime(str(raw_date), "%Y%m%d%H%M%S")
        except ValueError:
            return None


@dataclass(frozen=True)
class MalformedCallback:
    reason: str
    body: Any = None


def _extract_stk_callback(body):
    if not isinstance(body, dict):
        raise CallbackParseError("callback body is not a JSON object")
    envelope = body.get("Body")
    if not isinstance(envelope, dict):
        raise CallbackParseError("callback has no Body")
    stk_callback = envelope.get("stkCallback")
    if not isinstance(stk_callback, dict):
        raise CallbackParseError("callback has no Body.stkCallback")
    return stk_callback


def _parse_result_code(raw_code):
    # Only whole numbers count; 0.9 must never read as success
    if isinstance(raw_code, bool):
        pass
    elif isinstance(raw_code, int):
        return raw_code
    elif isinstance(raw_code, float) and raw_code.is_integer():
        return int(raw_code)
    elif isinstance(raw_code, str) and _RESULT_CODE.fullmatch(raw_code.strip()):
        return int(raw_code.strip())
    raise CallbackParseError(f"ResultCode is not an integer: {raw_code!r}")


def parse_callback(body):
    """
    Return a CallbackResult, or a MalformedCallback when the body does not
    carry a usable Body.stkCallback.
    """
    try:
        stk_callback = _extract_stk_callback(body)
        result_code = _parse_result_code(stk_callback.get("ResultCode"))
    except CallbackParseError as exc:
        return MalformedCallback(reason=str(exc), body=body)

    callback_metadata = stk_callback.get("CallbackMetadata")
    items = callback_metadata.get("Item") if isinstance(callback_metadata, dict) else None

    return CallbackResult(
        result_code=result_code,
        result_desc=str(stk_callback.get("ResultDesc") or ""),
        metadata=fold_metadata(items if isinstance(items, list) else None),
        merchant_request_id=stk_callback.get("MerchantRequestID"),
        checkout_request_id=stk_callback.get("CheckoutRequestID"),
        has_metadata=isinstance(items, list),
    )


def handle_callback(body):
    """
    Log the outcome of an STK push. Never raises: Safaricom keeps retrying
    delivery until it gets a 200, so every failure here ends in a log line.
    """
    try:
        logger.debug("M-Pesa callback: %s", json.dumps(body, indent=2, default=str))
        result = parse_callback(body)

        if isinstance(result, MalformedCallback):
            logger.warning("Ignoring malformed M-Pesa callback: %s", result.reason)
        elif result.succeeded and not result.has_metadata:
            logger.warning(
                "Payment successful but callback carried no metadata, CheckoutRequestID: %s",
                result.checkout_request_id,
            )
        elif result.succeeded:
            logger.info(
                "Payment successful: KES %s from %s, ID: %s",
                result.amount,
                result.phone_number,
                result.receipt_number,
            )
        else:
            logger.info("Payment failed: %s", result.result_desc)
        return result
    except Exception:
        logger.exception("Failed to process M-Pesa callback")
        return None
