import logging

from django.conf import settings
from django.core.management.commands.runserver import Command as RunserverCommand

logger = logging.getLogger(__name__)


class Command(RunserverCommand):
    """runserver that listens on settings.PORT unless an address is given."""
    default_port = str(settings.PORT)

    def inner_run(self, *args, **options):
        logger.info("Whisprr M-Pesa server running on port %s", self.port)
        super().inner_run(*args, **options)
