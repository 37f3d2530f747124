import logging

from django.apps import apps
from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.exceptions import ParseError, UnsupportedMediaType
from rest_framework.response import Response

from .callbacks import handle_callback
from .exceptions import MpesaError, ValidationError
from .mpesa_utils import MpesaClient
from .validation import PaymentRequest

logger = logging.getLogger(__name__)

LIVENESS_MESSAGE = "💖 Whisprr M-Pesa Server is alive."
STK_PUSH_SENT_MESSAGE = "STK push sent to your phone. Enter your PIN."


def get_mpesa_client():
    return MpesaClient(apps.get_app_config("payments").mpesa_config)


@api_view(['GET'])
def health_check(request):
    return HttpResponse(LIVENESS_MESSAGE, content_type="text/plain; charset=utf-8")


@api_view(['POST'])
def topup(request):
    """
    Initiates an STK push to the customer's phone.
    Expects JSON: {
        "phone": "07XXXXXXXX",
        "amount": 100,
        "userId": "user-123"
    }
    """
    try:
        payment = PaymentRequest.from_payload(request.data)
    except (ParseError, UnsupportedMediaType) as exc:
        logger.warning("Rejected top-up request with unreadable body: %s", exc)
        return Response({"message": "Request body must be valid JSON"}, status=status.HTTP_400_BAD_REQUEST)
    except ValidationError as exc:
        logger.warning("Rejected top-up request: %s", exc)
        return Response({"message": str(exc)}, status=exc.status_code)

    logger.info("Top-up request: %s for KES %s by %s", payment.phone, payment.amount, payment.user_id)

    client = get_mpesa_client()
    try:
        mpesa_response = client.initiate_payment(payment)
    except MpesaError as exc:
        logger.error("Payment error: %s", exc)
        return Response(
            {"message": "Payment failed", "error": str(exc)},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    finally:
        client.close()

    return Response({
        "message": STK_PUSH_SENT_MESSAGE,
        "mpesa_response": mpesa_response,
    }, status=status.HTTP_200_OK)


@api_view(['POST'])
def mpesa_callback(request):
    """
    Handles the M-Pesa STK push callback.
    Always answers 200 OK so Safaricom stops redelivering.
    """
    try:
        body = request.data
    except (ParseError, UnsupportedMediaType) as exc:
        logger.warning("M-Pesa callback body could not be parsed: %s", exc)
        body = None

    handle_callback(body)
    return HttpResponse("OK", status=status.HTTP_200_OK, content_type="text/plain")
