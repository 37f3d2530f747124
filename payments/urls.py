from django.urls import path, re_path
from .views import health_check, topup, mpesa_callback

urlpatterns = [
    path('', health_check, name='health-check'),
    re_path(r'^api/topup/?$', topup, name='topup'),
    re_path(r'^callback/?$', mpesa_callback, name='mpesa-callback'),
]
