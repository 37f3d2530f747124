import base64
import datetime
import logging

import requests

from .exceptions import ConfigurationError, PaymentInitiationError, TokenAcquisitionError

logger = logging.getLogger(__name__)

TRANSACTION_TYPE = "CustomerPayBillOnline"
ACCOUNT_REFERENCE_PREFIX = "WHISPRR_"


def _b64(value):
    return base64.b64encode(value.encode()).decode('utf-8')


def encode_basic_auth(consumer_key, consumer_secret):
    """
    Base64 of "consumer_key:consumer_secret" for the OAuth Basic header.
    """
    return _b64(f"{consumer_key}:{consumer_secret}")


def generate_timestamp(now=None):
    """
    Current UTC time in Daraja's 'YYYYMMDDHHmmss' format.
    """
    now = now or datetime.datetime.now(datetime.timezone.utc)
    return now.strftime('%Y%m%d%H%M%S')


def generate_password(short_code, pass_key, timestamp=None):
    """
    STK push password: base64 of short_code + pass_key + timestamp, no separators.

    A supplied timestamp is reused as-is so the password and the payload's
    Timestamp field match; without one, the current UTC time is used.

    Returns:
        (password, timestamp) as a tuple
    """
    timestamp = timestamp or generate_timestamp()
    return _b64(short_code + pass_key + timestamp), timestamp


def mask_token(token):
    if not token:
        return "<empty>"
    return f"{token[:4]}..."


def _error_detail(exc):
    """
    Prefer the errorMessage Daraja puts in its error body, fall back to the
    transport error text.
    """
    response = getattr(exc, "response", None)
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("errorMessage"):
            return body["errorMessage"]
    return str(exc)


class MpesaClient:
    """
    Talks to Safaricom Daraja: OAuth token exchange and STK push.
    One instance per request; nothing is cached between calls.
    """

    def __init__(self, config, session=None):
        self.config = config
        self.session = session or requests.Session()

    def close(self):
        self.session.close()

    def fetch_access_token(self):
        """
        Exchange the consumer key/secret for a bearer token.
        A fresh token is requested every time.
        """
        if not self.config.has_credentials:
            raise ConfigurationError("Missing consumer key or secret")

        headers = {
            "Authorization": f"Basic {encode_basic_auth(self.config.consumer_key, self.config.consumer_secret)}"
        }
        try:
            r = self.session.get(self.config.oauth_url, headers=headers, timeout=self.config.timeout)
            r.raise_for_status()
            body = r.json()
        except (requests.RequestException, ValueError) as exc:
            raise TokenAcquisitionError(f"Token error: {_error_detail(exc)}") from exc

        token = body.get('access_token') if isinstance(body, dict) else None
        if not token:
            raise TokenAcquisitionError("Token error: response did not include an access_token")

        logger.debug("Obtained M-Pesa access token %s", mask_token(token))
        return token

    def build_stk_push_payload(self, payment, timestamp=None):
        password, timestamp = generate_password(self.config.short_code, self.config.passkey, timestamp)
        return {
            "BusinessShortCode": self.config.short_code,
            "Password": password,
            "Timestamp": timestamp,
            "TransactionType": TRANSACTION_TYPE,
            "Amount": payment.amount,
            "PartyA": payment.phone,  # Phone number paying
            "PartyB": self.config.short_code,  # Business shortcode
            "PhoneNumber": payment.phone,
            "CallBackURL": self.config.callback_url,
            "AccountReference": f"{ACCOUNT_REFERENCE_PREFIX}{payment.user_id}",
            "TransactionDesc": f"Whisprr Wallet Top-Up - User {payment.user_id}",
        }

    def initiate_payment(self, payment):
        """
        Send an STK push for a validated PaymentRequest.

        Returns Daraja's acknowledgment body untouched. It only says the push
        was accepted; the outcome arrives later on the callback URL.
        """
        missing = [
            name
            for name, value in (
                ("MPESA_SHORTCODE", self.config.short_code),
                ("MPESA_PASSKEY", self.config.passkey),
                ("MPESA_CALLBACK_URL", self.config.callback_url),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing M-Pesa settings: {', '.join(missing)}")

        access_token = self.fetch_access_token()
        payload = self.build_stk_push_payload(payment)

        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json"
        }
        try:
            r = self.session.post(
                self.config.stk_push_url, json=payload, headers=headers, timeout=self.config.timeout
            )
            r.raise_for_status()
            response_json = r.json()
        except (requests.RequestException, ValueError) as exc:
            detail = _error_detail(exc)
            logger.error("STK push failed for %s: %s", payment.phone, detail)
            raise PaymentInitiationError(detail) from exc

        logger.info("M-Pesa response: %s", response_json)
        return response_json
