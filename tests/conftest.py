import json
from unittest.mock import Mock

import pytest
import requests
from rest_framework.test import APIClient

from payments.config import MpesaConfig
from payments.mpesa_utils import MpesaClient


def mock_http_response(json_data, status_code=200):
    """Return a mock requests.Response whose .json() returns json_data."""
    resp = Mock()
    resp.status_code = status_code
    resp.json.return_value = json_data
    resp.text = json.dumps(json_data)
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(
            f"{status_code} Client Error", response=resp
        )
    return resp


@pytest.fixture
def mpesa_config():
    return MpesaConfig(
        consumer_key="key",
        consumer_secret="secret",
        short_code="174379",
        passkey="passkey",
        callback_url="https://whisprr.example.com/callback",
    )


@pytest.fixture
def session():
    session = Mock()
    session.get.return_value = mock_http_response({"access_token": "tok_abc123", "expires_in": "3599"})
    session.post.return_value = mock_http_response({
        "MerchantRequestID": "29115-34620561-1",
        "CheckoutRequestID": "ws_CO_191220191020363925",
        "ResponseCode": "0",
        "ResponseDescription": "Success. Request accepted for processing",
        "CustomerMessage": "Success. Request accepted for processing",
    })
    return session


@pytest.fixture
def mpesa_client(mpesa_config, session):
    return MpesaClient(mpesa_config, session=session)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def patched_client(monkeypatch, mpesa_client):
    """Route the views through an MpesaClient backed by the mocked session."""
    monkeypatch.setattr("payments.views.get_mpesa_client", lambda: mpesa_client)
    return mpesa_client
