from dataclasses import dataclass
from typing import Optional

from .exceptions import ConfigurationError

DARAJA_BASE_URLS = {
    "sandbox": "https://sandbox.safaricom.co.ke",
    "production": "https://api.safaricom.co.ke",
}


@dataclass(frozen=True)
class MpesaConfig:
    """
    Daraja credentials and endpoints, read once when the app starts.
    """
    consumer_key: str
    consumer_secret: str
    short_code: str
    passkey: str
    callback_url: str
    environment: str = "sandbox"
    timeout: Optional[float] = None

    @property
    def base_url(self):
        return DARAJA_BASE_URLS[self.environment]

    @property
    def oauth_url(self):
        return f"{self.base_url}/oauth/v1/generate?grant_type=client_credentials"

    @property
    def stk_push_url(self):
        return f"{self.base_url}/mpesa/stkpush/v1/processrequest"

    @property
    def has_credentials(self):
        return bool(self.consumer_key and self.consumer_secret)

    @classmethod
    def from_settings(cls, settings):
        environment = (getattr(settings, "MPESA_ENVIRONMENT", "sandbox") or "sandbox").lower()
        if environment not in DARAJA_BASE_URLS:
            raise ConfigurationError(
                f"MPESA_ENVIRONMENT must be one of {', '.join(sorted(DARAJA_BASE_URLS))}, got '{environment}'"
            )

        return cls(
            consumer_key=getattr(settings, "MPESA_CONSUMER_KEY", "") or "",
            consumer_secret=getattr(settings, "MPESA_CONSUMER_SECRET", "") or "",
            short_code=str(getattr(settings, "MPESA_SHORTCODE", "") or ""),
            passkey=getattr(settings, "MPESA_PASSKEY", "") or "",
            callback_url=getattr(settings, "MPESA_CALLBACK_URL", "") or "",
            environment=environment,
            timeout=getattr(settings, "MPESA_TIMEOUT", None),
        )
