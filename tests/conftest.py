from datetime import timedelta

import pytest
from django.core.cache import cache
from django.utils import timezone

from apps.accounts.models import User
from apps.cart.models import Cart, CartItem
from apps.products.models import Product, ProductVariant


def make_user(email='cliente@example.com', is_guest=False):
    return User.objects.create_user(username=email, email=email, password='x' * 12, is_guest=is_guest)


def make_product(name='Camiseta', **kwargs):
    return Product.objects.create(name=name, **kwargs)


def make_variant(product, name='Talla M', **kwargs):
    return ProductVariant.objects.create(product=product, name=name, **kwargs)


def make_cart(user, lines=(), idle_hours=30, reminder_count=0, now=None):
    """Crea un carrito con las líneas dadas y lo envejece idle_hours."""
    now = now or timezone.now()
    cart = Cart.objects.create(user=user)
    for line in lines:
        CartItem.objects.create(cart=cart, **line)
    Cart.objects.filter(pk=cart.pk).update(
        updated_at=now - timedelta(hours=idle_hours),
        reminder_count=reminder_count,
    )
    cart.refresh_from_db()
    return cart


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def now():
    return timezone.now()


@pytest.fixture
def customer(db):
    return make_user()


@pytest.fixture
def product(db):
    return make_product()


@pytest.fixture
def variant(db, product):
    return make_variant(product)


@pytest.fixture
def abandoned_cart(customer, product, now):
    """Dos líneas, inactivo hace 30h, sin recordatorios."""
    other = make_product(name='Pantalón')
    return make_cart(
        customer,
        lines=[{'product': product, 'quantity': 2}, {'product': other, 'quantity': 1}],
        idle_hours=30,
        now=now,
    )
