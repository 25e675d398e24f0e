"""
Operaciones sobre el carrito persistido.
Cada cambio en las líneas actualiza updated_at del carrito.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F

from .models import Cart, CartItem

logger = logging.getLogger(__name__)


def get_or_create_cart(user):
    """Último carrito del usuario; crea uno si no tiene."""
    cart = Cart.objects.filter(user=user).order_by('-updated_at').first()
    if cart is None:
        cart = Cart.objects.create(user=user)
    return cart


def add_item(cart, product=None, variant=None, quantity=1):
    """
    Añade un producto o una variante al carrito.
    Si ya está, suma la cantidad. Con variante se ignora el producto.
    """
    if quantity is None:
        quantity = 1
    if quantity < 1:
        raise ValidationError('La cantidad debe ser al menos 1.')

    if variant is not None:
        if not variant.is_active:
            raise ValidationError('Variante no disponible.')
        lookup = {'variant': variant}
    elif product is not None:
        if not product.is_active:
            raise ValidationError('Producto no disponible.')
        lookup = {'product': product}
    else:
        raise ValidationError('Se requiere un producto o una variante.')

    with transaction.atomic():
        item = CartItem.objects.select_for_update().filter(cart=cart, **lookup).first()
        if item is not None:
            CartItem.objects.filter(pk=item.pk).update(quantity=F('quantity') + quantity)
            item.refresh_from_db(fields=['quantity'])
        else:
            item = CartItem.objects.create(cart=cart, quantity=quantity, **lookup)
        cart.touch()

    logger.debug('Carrito %s: %s x%s', cart.pk, item.target, quantity)
    return item


def remove_item(cart, item_id):
    """Elimina una línea del carrito. Devuelve True si existía."""
    deleted, _ = CartItem.objects.filter(cart=cart, pk=item_id).delete()
    if deleted:
        cart.touch()
    return bool(deleted)
