from django.apps import AppConfig


class BikesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.bikes'
    verbose_name = 'Bikes'
