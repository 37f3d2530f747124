import base64
import datetime
from dataclasses import replace
from unittest.mock import patch

import pytest
import requests

from payments.exceptions import ConfigurationError, PaymentInitiationError, TokenAcquisitionError
from payments.mpesa_utils import (
    MpesaClient,
    encode_basic_auth,
    generate_password,
    generate_timestamp,
    mask_token,
)
from payments.validation import PaymentRequest

from .conftest import mock_http_response


def _payment():
    return PaymentRequest(phone="254712345678", amount=100, user_id="user-42")


def test_password_is_base64_of_shortcode_passkey_timestamp():
    password, timestamp = generate_password("123456", "abc", "20240101120000")

    assert timestamp == "20240101120000"
    assert password == base64.b64encode(b"123456abc20240101120000").decode()


def test_password_generates_timestamp_when_missing():
    with patch("payments.mpesa_utils.generate_timestamp", return_value="20250102030405"):
        password, timestamp = generate_password("1", "2")

    assert timestamp == "20250102030405"
    assert base64.b64decode(password) == b"1220250102030405"


def test_timestamp_is_fourteen_digits_in_utc():
    now = datetime.datetime(2024, 1, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)
    assert generate_timestamp(now) == "20240101120000"

    current = generate_timestamp()
    assert len(current) == 14
    assert current.isdigit()


def test_basic_auth_encoding():
    assert encode_basic_auth("key", "secret") == base64.b64encode(b"key:secret").decode()


def test_mask_token_never_reveals_whole_token():
    assert mask_token("tok_abc123") == "tok_..."
    assert mask_token("") == "<empty>"


def test_fetch_access_token_sends_basic_auth(mpesa_client, mpesa_config, session):
    token = mpesa_client.fetch_access_token()

    assert token == "tok_abc123"
    session.get.assert_called_once_with(
        "https://sandbox.safaricom.co.ke/oauth/v1/generate?grant_type=client_credentials",
        headers={"Authorization": f"Basic {encode_basic_auth('key', 'secret')}"},
        timeout=None,
    )


@pytest.mark.parametrize("key, secret", [("", "secret"), ("key", ""), ("", "")])
def test_fetch_access_token_without_credentials_makes_no_call(mpesa_config, session, key, secret):
    config = replace(mpesa_config, consumer_key=key, consumer_secret=secret)
    client = MpesaClient(config, session=session)

    with pytest.raises(ConfigurationError, match="Missing consumer key or secret"):
        client.fetch_access_token()

    session.get.assert_not_called()
    session.post.assert_not_called()


def test_fetch_access_token_reports_provider_error_message(mpesa_client, session):
    session.get.return_value = mock_http_response(
        {"requestId": "1", "errorCode": "401.002.01", "errorMessage": "Error Occurred - Invalid Access Token"},
        status_code=401,
    )

    with pytest.raises(TokenAcquisitionError) as excinfo:
        mpesa_client.fetch_access_token()

    assert str(excinfo.value) == "Token error: Error Occurred - Invalid Access Token"


def test_fetch_access_token_reports_transport_error(mpesa_client, session):
    session.get.side_effect = requests.ConnectionError("connection refused")

    with pytest.raises(TokenAcquisitionError, match="Token error: connection refused"):
        mpesa_client.fetch_access_token()


def test_fetch_access_token_requires_token_in_body(mpesa_client, session):
    session.get.return_value = mock_http_response({"expires_in": "3599"})

    with pytest.raises(TokenAcquisitionError, match="access_token"):
        mpesa_client.fetch_access_token()


def test_stk_push_payload(mpesa_client):
    payload = mpesa_client.build_stk_push_payload(_payment(), timestamp="20240101120000")

    assert payload == {
        "BusinessShortCode": "174379",
        "Password": base64.b64encode(b"174379passkey20240101120000").decode(),
        "Timestamp": "20240101120000",
        "TransactionType": "CustomerPayBillOnline",
        "Amount": 100,
        "PartyA": "254712345678",
        "PartyB": "174379",
        "PhoneNumber": "254712345678",
        "CallBackURL": "https://whisprr.example.com/callback",
        "AccountReference": "WHISPRR_user-42",
        "TransactionDesc": "Whisprr Wallet Top-Up - User user-42",
    }


def test_initiate_payment_fetches_token_then_pushes(mpesa_client, session):
    response = mpesa_client.initiate_payment(_payment())

    assert [call[0] for call in session.method_calls] == ["get", "post"]
    assert response["CheckoutRequestID"] == "ws_CO_191220191020363925"

    post_args, post_kwargs = session.post.call_args
    assert post_args[0] == "https://sandbox.safaricom.co.ke/mpesa/stkpush/v1/processrequest"
    assert post_kwargs["headers"]["Authorization"] == "Bearer tok_abc123"
    assert post_kwargs["json"]["Amount"] == 100
    assert post_kwargs["json"]["PhoneNumber"] == "254712345678"


def test_initiate_payment_twice_sends_two_pushes(mpesa_client, session):
    mpesa_client.initiate_payment(_payment())
    mpesa_client.initiate_payment(_payment())

    assert session.get.call_count == 2
    assert session.post.call_count == 2


def test_initiate_payment_propagates_token_failure(mpesa_client, session):
    session.get.return_value = mock_http_response({"errorMessage": "Invalid credentials"}, status_code=400)

    with pytest.raises(TokenAcquisitionError):
        mpesa_client.initiate_payment(_payment())

    session.post.assert_not_called()


def test_initiate_payment_reports_provider_rejection(mpesa_client, session):
    session.post.return_value = mock_http_response(
        {"errorCode": "400.002.02", "errorMessage": "Bad Request - Invalid PhoneNumber"},
        status_code=400,
    )

    with pytest.raises(PaymentInitiationError, match="Bad Request - Invalid PhoneNumber"):
        mpesa_client.initiate_payment(_payment())


def test_initiate_payment_requires_shortcode_passkey_and_callback(mpesa_config, session):
    config = replace(mpesa_config, passkey="", callback_url="")
    client = MpesaClient(config, session=session)

    with pytest.raises(ConfigurationError, match="MPESA_PASSKEY, MPESA_CALLBACK_URL"):
        client.initiate_payment(_payment())

    session.get.assert_not_called()


def test_production_environment_uses_live_host(mpesa_config, session):
    config = replace(mpesa_config, environment="production")
    MpesaClient(config, session=session).fetch_access_token()

    assert session.get.call_args[0][0].startswith("https://api.safaricom.co.ke/oauth/v1/generate")
