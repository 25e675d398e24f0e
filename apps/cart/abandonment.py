"""
Barrido de carritos abandonados.

Una ejecución (diaria, vía Celery beat o el comando
send_abandoned_cart_reminders) hace, carrito por carrito y en orden:
  1. seleccionar carritos inactivos con líneas de clientes registrados,
  2. asegurar un código de descuento vigente para (usuario, carrito),
  3. enviar el correo de recordatorio,
  4. solo si el envío se confirmó, avanzar reminder_count/last_reminder_at.

Un fallo en un carrito no detiene el resto. Cada ejecución parte de cero
consultando la base; el estado entre ejecuciones vive en Cart.
"""
import logging
from contextlib import contextmanager
from datetime import timedelta

from django.conf import settings
from django.core.cache import cache
from django.db import DEFAULT_DB_ALIAS, DatabaseError
from django.db.models import Exists, F, OuterRef, Prefetch
from django.utils import timezone

from apps.core.emails import notify_cart_abandoned
from apps.coupons.services import DiscountCodeError, issue_discount_code

from .models import Cart, CartItem

logger = logging.getLogger(__name__)

SENT = 'sent'
SKIPPED = 'skipped'
FAILED = 'failed'

LOCK_KEY = 'cart:abandoned-reminders:lock'


@contextmanager
def sweep_lock():
    """
    Lock en cache compartido por el beat y el comando manual.
    Entrega True si se obtuvo; solo quien lo obtuvo lo libera.
    """
    acquired = cache.add(LOCK_KEY, 'running', timeout=settings.ABANDONED_CART_LOCK_TIMEOUT)
    try:
        yield acquired
    finally:
        if acquired:
            cache.delete(LOCK_KEY)


def find_abandoned_carts(now=None, idle_hours=None, using=DEFAULT_DB_ALIAS):
    """
    Carritos candidatos: sin cambios hace más de idle_hours, con al menos una
    línea, de un usuario no invitado con email y por debajo del tope de
    recordatorios. Sin efectos secundarios.
    """
    now = now or timezone.now()
    if idle_hours is None:
        idle_hours = settings.ABANDONED_CART_IDLE_HOURS
    cutoff = now - timedelta(hours=idle_hours)

    has_items = Exists(
        CartItem.objects.using(using).filter(cart=OuterRef('pk'))
    )
    items = CartItem.objects.using(using).select_related(
        'product', 'variant', 'variant__product'
    ).order_by('pk')

    return list(
        Cart.objects.using(using)
        .filter(
            has_items,
            updated_at__lt=cutoff,
            user__is_guest=False,
            reminder_count__lt=settings.ABANDONED_CART_MAX_REMINDERS,
        )
        .exclude(user__email='')
        .select_related('user')
        .prefetch_related(Prefetch('items', queryset=items))
        .order_by('updated_at', 'pk')
    )


def build_reminder_items(cart, discount_code):
    return [
        {
            'name': item.display_name,
            'quantity': item.quantity,
            'discount': discount_code.discount,
        }
        for item in cart.items.all()
    ]


def mark_cart_reminded(cart, expected_count, now, using=DEFAULT_DB_ALIAS):
    """
    Suma un recordatorio al carrito con un UPDATE condicional de una fila.
    No toca updated_at. Devuelve False si otra ejecución ya lo avanzó.
    """
    updated = (
        Cart.objects.using(using)
        .filter(
            pk=cart.pk,
            reminder_count=expected_count,
            reminder_count__lt=settings.ABANDONED_CART_MAX_REMINDERS,
        )
        .update(reminder_count=F('reminder_count') + 1, last_reminder_at=now)
    )
    if updated:
        cart.reminder_count = expected_count + 1
        cart.last_reminder_at = now
        return True
    logger.warning(
        'Carrito %s: reminder_count cambió durante el envío (esperado %s)',
        cart.pk, expected_count,
    )
    return False


def remind_cart(cart, now, using=DEFAULT_DB_ALIAS):
    """Procesa un carrito candidato. Devuelve SENT, SKIPPED o FAILED."""
    # El tope se relee aquí: otra ejecución pudo avanzarlo tras el escaneo.
    current = (
        Cart.objects.using(using)
        .filter(pk=cart.pk)
        .values_list('reminder_count', flat=True)
        .first()
    )
    if current is None or current >= settings.ABANDONED_CART_MAX_REMINDERS:
        logger.info('Carrito %s ya no es elegible, omitido', cart.pk)
        return SKIPPED

    user = cart.user
    try:
        discount_code = issue_discount_code(user, cart, now=now, using=using)
    except (DiscountCodeError, DatabaseError):
        logger.exception('Carrito %s: no se pudo emitir el código de descuento', cart.pk)
        return FAILED

    items = build_reminder_items(cart, discount_code)
    if not notify_cart_abandoned(user.email, items, discount_code, now=now):
        logger.error(
            'Carrito %s: falló el envío a %s; se reintentará en la próxima ejecución',
            cart.pk, user.email,
        )
        return FAILED

    try:
        advanced = mark_cart_reminded(cart, current, now, using=using)
    except DatabaseError:
        logger.exception('Carrito %s: correo enviado pero no se actualizó el contador', cart.pk)
        return FAILED
    if not advanced:
        return SKIPPED

    logger.info(
        'Recordatorio %s/%s enviado a %s con código %s',
        current + 1, settings.ABANDONED_CART_MAX_REMINDERS, user.email, discount_code.code,
    )
    return SENT


def send_abandoned_cart_reminders(now=None, idle_hours=None, using=DEFAULT_DB_ALIAS):
    """
    Ejecuta un barrido completo. Un error al consultar candidatos aborta
    la ejecución (se registra y se propaga); los errores por carrito no.
    Devuelve {'candidates', 'sent', 'skipped', 'failed'}.
    """
    now = now or timezone.now()
    try:
        carts = find_abandoned_carts(now=now, idle_hours=idle_hours, using=using)
    except DatabaseError:
        logger.exception('No se pudieron consultar los carritos abandonados')
        raise

    summary = {'candidates': len(carts), SENT: 0, SKIPPED: 0, FAILED: 0}
    logger.info('Carritos abandonados a procesar: %s', len(carts))

    for cart in carts:
        try:
            outcome = remind_cart(cart, now, using=using)
        except Exception:
            logger.exception('Carrito %s: error inesperado, se continúa con el siguiente', cart.pk)
            outcome = FAILED
        summary[outcome] += 1

    logger.info(
        'Barrido terminado: %s enviados, %s omitidos, %s fallidos',
        summary[SENT], summary[SKIPPED], summary[FAILED],
    )
    return summary
