"""
Django settings for the Whisprr M-Pesa server.

Every value can come from the environment or a .env file (python-decouple).
"""
from pathlib import Path

from decouple import Csv, config

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = config('DJANGO_SECRET_KEY', default='whisprr-dev-only-secret-key')
DEBUG = config('DJANGO_DEBUG', default=False, cast=bool)
ALLOWED_HOSTS = config('DJANGO_ALLOWED_HOSTS', default='*', cast=Csv())

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'corsheaders',
    'rest_framework',
    'payments.apps.PaymentsConfig',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'whisprr.urls'
WSGI_APPLICATION = 'whisprr.wsgi.application'
APPEND_SLASH = False

# No persistence
DATABASES = {}

USE_TZ = True
TIME_ZONE = 'UTC'

CORS_ALLOW_ALL_ORIGINS = True

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.AllowAny'],
    'DEFAULT_PARSER_CLASSES': ['rest_framework.parsers.JSONParser'],
    'DEFAULT_RENDERER_CLASSES': ['rest_framework.renderers.JSONRenderer'],
    'UNAUTHENTICATED_USER': None,
}

PORT = config('PORT', default=3000, cast=int)

# Safaricom Daraja
MPESA_CONSUMER_KEY = config('DARAJA_CONSUMER_KEY', default='')
MPESA_CONSUMER_SECRET = config('DARAJA_CONSUMER_SECRET', default='')
MPESA_SHORTCODE = config('DARAJA_SHORTCODE', default='')
MPESA_PASSKEY = config('DARAJA_PASSKEY', default='')
MPESA_CALLBACK_URL = config('DARAJA_CALLBACK_URL', default='')
MPESA_ENVIRONMENT = config('DARAJA_ENVIRONMENT', default='sandbox')
MPESA_TIMEOUT = config('DARAJA_TIMEOUT', default=None, cast=lambda v: float(v) if v else None)

LOG_LEVEL = config('LOG_LEVEL', default='INFO').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'standard': {
            'format': '%(asctime)s %(levelname)s %(name)s %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'standard',
        },
    },
    'loggers': {
        'payments': {
            'level': LOG_LEVEL,
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
}
