from django.apps import AppConfig


class FinanceConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'backoffice.finance'
    label = 'finance'

    def ready(self):
        """Import signals when app is ready"""
        import backoffice.finance.signals  # noqa: F401
