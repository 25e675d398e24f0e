"""Modelos del carrito persistido por usuario."""
from typing import NamedTuple

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

UNNAMED_PRODUCT = 'Producto sin nombre'


class ItemTarget(NamedTuple):
    """Lo que referencia una línea: ('product', id) o ('variant', id)."""
    kind: str
    id: int


class Cart(models.Model):
    """
    Carrito de un usuario registrado o invitado.
    reminder_count/last_reminder_at los mantiene el barrido de carritos
    abandonados; nunca se reinician al modificar el carrito.
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='carts',
        verbose_name='Usuario',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)
    reminder_count = models.PositiveSmallIntegerField('Recordatorios enviados', default=0)
    last_reminder_at = models.DateTimeField('Último recordatorio', null=True, blank=True)

    class Meta:
        verbose_name = 'Carrito'
        verbose_name_plural = 'Carritos'
        ordering = ['-updated_at']

    def __str__(self):
        return f"Carrito #{self.pk} - {self.user}"

    def touch(self):
        """Marca el carrito como modificado (reinicia el reloj de abandono)."""
        self.save(update_fields=['updated_at'])


class CartItem(models.Model):
    """Línea del carrito: exactamente uno de product o variant."""
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(
        'products.Product', on_delete=models.CASCADE,
        null=True, blank=True, related_name='cart_items',
    )
    variant = models.ForeignKey(
        'products.ProductVariant', on_delete=models.CASCADE,
        null=True, blank=True, related_name='cart_items',
    )
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Línea de carrito'
        verbose_name_plural = 'Líneas de carrito'
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(product__isnull=False, variant__isnull=True)
                    | Q(product__isnull=True, variant__isnull=False)
                ),
                name='cartitem_product_xor_variant',
            ),
            models.CheckConstraint(
                condition=Q(quantity__gte=1),
                name='cartitem_quantity_positive',
            ),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.display_name}"

    def clean(self):
        if (self.product_id is None) == (self.variant_id is None):
            raise ValidationError('La línea debe referenciar un producto o una variante, no ambos.')

    @property
    def target(self):
        if self.variant_id is not None:
            return ItemTarget('variant', self.variant_id)
        return ItemTarget('product', self.product_id)

    @property
    def display_name(self):
        """Nombre de la variante, luego el del producto, luego un genérico."""
        if self.variant_id is not None:
            candidates = [self.variant.name, self.variant.product.name]
        elif self.product_id is not None:
            candidates = [self.product.name]
        else:
            candidates = []
        for name in candidates:
            if name and name.strip():
                return name.strip()
        return UNNAMED_PRODUCT
