from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone


class DiscountCode(models.Model):
    """
    Código promocional de un solo uso, ligado a un par (usuario, carrito).
    Lo emite el barrido de carritos abandonados y lo consume el checkout.
    """
    code = models.CharField(max_length=12, unique=True, db_index=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='discount_codes',
    )
    cart = models.ForeignKey(
        'cart.Cart',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='discount_codes',
    )
    discount = models.PositiveSmallIntegerField(
        'Descuento (%)', validators=[MaxValueValidator(100)]
    )
    used = models.BooleanField(default=False)
    used_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Código de descuento'
        verbose_name_plural = 'Códigos de descuento'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'cart', 'used'], name='discount_user_cart_used_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(discount__gte=0) & Q(discount__lte=100),
                name='discountcode_percent_range',
            ),
        ]

    def __str__(self):
        return self.code

    def is_valid(self, now=None):
        now = now or timezone.now()
        return not self.used and self.expires_at > now

    def get_discount(self, amount, now=None):
        """Calcula el descuento aplicable sobre un monto."""
        if not self.is_valid(now):
            return Decimal('0.00')
        amount = Decimal(amount)
        discount = amount * Decimal(self.discount) / Decimal(100)
        return discount.quantize(Decimal('0.01'))
