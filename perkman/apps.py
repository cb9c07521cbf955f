from django.apps import AppConfig


class PerkmanConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "perkman"
    verbose_name = "Perkman - Pricing & Redemption"
