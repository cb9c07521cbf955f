"""Product model - the catalog the default CatalogBackend reads from."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class Product(models.Model):
    """Menu product with its catalog price."""

    code = models.CharField(_("code"), max_length=50, unique=True)
    name = models.CharField(_("name"), max_length=200)
    category = models.CharField(_("category"), max_length=100, blank=True, db_index=True)
    price = models.DecimalField(_("price"), max_digits=12, decimal_places=2)
    menu_item_key = models.CharField(
        _("menu item key"),
        max_length=100,
        null=True,
        blank=True,
        unique=True,
        help_text=_("POS menu key resolved to this product"),
    )
    is_active = models.BooleanField(_("active"), default=True)

    class Meta:
        verbose_name = _("product")
        verbose_name_plural = _("products")
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.code})"
