# apps/common/urls.py
from django.urls import path
from . import api

urlpatterns = [
    path('health/', api.health_check, name='health_check'),
    path('enums/', api.enums_api, name='enums'),
]
