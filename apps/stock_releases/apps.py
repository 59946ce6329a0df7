from django.apps import AppConfig


class StockReleasesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.stock_releases'
    verbose_name = 'Stock Releases'
