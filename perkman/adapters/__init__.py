"""Perkman adapters."""

from django.utils.module_loading import import_string

from perkman.conf import perkman_settings


def get_catalog_backend():
    """Instantiate the configured CatalogBackend."""
    return import_string(perkman_settings.CATALOG_BACKEND)()


def get_tier_backend():
    """Instantiate the configured TierBackend."""
    return import_string(perkman_settings.TIER_BACKEND)()
