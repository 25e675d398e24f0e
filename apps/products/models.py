"""
Catálogo mínimo: productos y sus variantes.
Los carritos referencian uno u otro; el nombre se usa en los correos.
"""
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils.text import slugify


class Product(models.Model):
    """Producto principal."""
    name = models.CharField(max_length=255, blank=True)
    slug = models.SlugField(unique=True, max_length=255, blank=True)
    sku = models.CharField(max_length=100, blank=True, db_index=True)
    description = models.TextField(blank=True)
    regular_price = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Producto'
        verbose_name_plural = 'Productos'
        ordering = ['-created_at']

    def __str__(self):
        return self.name or f'Producto #{self.pk}'

    def save(self, *args, **kwargs):
        if not self.slug:
            base_slug = slugify(self.name) or 'producto'
            slug = base_slug
            counter = 1
            while Product.objects.filter(slug=slug).exclude(pk=self.pk).exists():
                slug = f'{base_slug}-{counter}'
                counter += 1
            self.slug = slug
        super().save(*args, **kwargs)

    @property
    def price(self):
        return self.regular_price


class ProductVariant(models.Model):
    """Variantes de producto (talla, color...)."""
    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name='variants'
    )
    name = models.CharField(max_length=255, blank=True)
    sku = models.CharField(max_length=100, blank=True, db_index=True)
    attributes = models.JSONField(default=dict, blank=True)  # {"talla": "M", "color": "Rojo"}
    regular_price = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Variante'
        verbose_name_plural = 'Variantes'

    def __str__(self):
        return f"{self.product} - {self.name or self.attributes_display() or 'Default'}"

    @property
    def price(self):
        """Sin precio propio hereda el del producto."""
        if self.regular_price is not None:
            return self.regular_price
        return self.product.price

    def attributes_display(self):
        return ', '.join(f"{k}: {v}" for k, v in self.attributes.items())
