import logging

from django.apps import AppConfig
from django.conf import settings

from .config import MpesaConfig

logger = logging.getLogger(__name__)


class PaymentsConfig(AppConfig):
    name = 'payments'
    verbose_name = "M-Pesa payments"

    def ready(self):
        # Settings are read once; views hand this config to every MpesaClient
        self.mpesa_config = MpesaConfig.from_settings(settings)
        if not self.mpesa_config.has_credentials:
            logger.warning("DARAJA_CONSUMER_KEY / DARAJA_CONSUMER_SECRET are not set; top-ups will fail")
