from django.apps import AppConfig


class CalculatorConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "calculator"

    def ready(self):
        # Bad rule tables or BUILDMATE_POLICY surface at startup.
        from .services.field_rules import get_registry
        from .services.policy import get_policy

        get_registry().validate()
        get_policy()
