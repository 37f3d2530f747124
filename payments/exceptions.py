class MpesaError(Exception):
    """
    Base class for failures raised while talking to M-Pesa.
    ``status_code`` is the HTTP status the API views answer with.
    """
    status_code = 500


class ConfigurationError(MpesaError):
    """Raised when Daraja credentials or settings are missing."""


class ValidationError(MpesaError):
    """Raised when a top-up request body is missing fields or malformed."""
    status_code = 400


class TokenAcquisitionError(MpesaError):
    """Raised when the OAuth client-credentials call fails."""


class PaymentInitiationError(MpesaError):
    """Raised when the STK push request is rejected or cannot be sent."""


class CallbackParseError(MpesaError):
    """
    Raised internally when a callback body cannot be understood.
    Never propagated to Safaricom; the callback view always answers OK.
    """
