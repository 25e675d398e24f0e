"""
Emisión y canje de códigos de descuento.

Los códigos son 6 caracteres hexadecimales en mayúscula (p. ej. A3F4C1)
y son únicos en toda la tabla. El checkout los valida tal cual.
"""
import logging
import secrets
from datetime import timedelta

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, IntegrityError, transaction
from django.utils import timezone

from .models import DiscountCode

logger = logging.getLogger(__name__)

CODE_BYTES = 3


class DiscountCodeError(Exception):
    """Error base de códigos de descuento."""


class DiscountCodeGenerationError(DiscountCodeError):
    """No se encontró un código libre tras los intentos permitidos."""


class InvalidDiscountCode(DiscountCodeError):
    """El código no existe, no es del usuario, ya se usó o venció."""


def generate_code(nbytes=CODE_BYTES):
    return secrets.token_hex(nbytes).upper()


def find_reusable_code(user, cart, now=None, using=DEFAULT_DB_ALIAS):
    """Código sin usar y vigente para este par (usuario, carrito), si existe."""
    now = now or timezone.now()
    return (
        DiscountCode.objects.using(using)
        .filter(user=user, cart=cart, used=False, expires_at__gt=now)
        .order_by('-expires_at')
        .first()
    )


def issue_discount_code(user, cart, now=None, using=DEFAULT_DB_ALIAS):
    """
    Devuelve un código utilizable para el carrito: reutiliza el vigente o
    crea uno nuevo. Una colisión de unicidad (incluida la de otro proceso
    que insertó el mismo código entre la consulta y el INSERT) se resuelve
    generando otro valor.

    La fila del carrito queda bloqueada mientras se busca y crea el código:
    dos barridos simultáneos sobre el mismo carrito acaban con un solo código.
    """
    now = now or timezone.now()
    with transaction.atomic(using=using):
        type(cart)._default_manager.using(using).select_for_update().filter(pk=cart.pk).first()
        existing = find_reusable_code(user, cart, now=now, using=using)
        if existing is not None:
            logger.debug('Reutilizando código %s para carrito %s', existing.code, cart.pk)
            return existing
        return _create_discount_code(user, cart, now, using)


def _create_discount_code(user, cart, now, using):
    expires_at = now + timedelta(days=settings.ABANDONED_CART_CODE_VALID_DAYS)
    max_attempts = max(1, settings.ABANDONED_CART_CODE_MAX_ATTEMPTS)
    codes = DiscountCode.objects.using(using)

    for attempt in range(1, max_attempts + 1):
        code = generate_code()
        if codes.filter(code=code).exists():
            logger.info('Colisión de código %s (intento %s/%s)', code, attempt, max_attempts)
            continue
        try:
            with transaction.atomic(using=using):
                discount_code = codes.create(
                    code=code,
                    user=user,
                    cart=cart,
                    discount=settings.ABANDONED_CART_DISCOUNT_PERCENT,
                    expires_at=expires_at,
                )
        except IntegrityError:
            logger.info('Código %s tomado al insertar (intento %s/%s)', code, attempt, max_attempts)
            continue
        logger.info(
            'Código %s creado para usuario=%s carrito=%s (vence %s)',
            discount_code.code, user.pk, cart.pk, expires_at.isoformat(),
        )
        return discount_code

    raise DiscountCodeGenerationError(
        f'No se pudo generar un código único tras {max_attempts} intentos'
    )


def redeem_discount_code(code, user, now=None):
    """
    Canjea un código en el checkout. El marcado como usado es condicional,
    así un código solo se canjea una vez aunque lleguen dos pedidos a la vez.
    """
    now = now or timezone.now()
    normalized = (code or '').strip().upper()
    if not normalized:
        raise InvalidDiscountCode('Código vacío.')

    discount_code = DiscountCode.objects.filter(code=normalized, user=user).first()
    if discount_code is None:
        raise InvalidDiscountCode('Código no válido.')
    if discount_code.used:
        raise InvalidDiscountCode('El código ya fue utilizado.')
    if discount_code.expires_at <= now:
        raise InvalidDiscountCode('El código está vencido.')

    updated = DiscountCode.objects.filter(pk=discount_code.pk, used=False).update(
        used=True, used_at=now
    )
    if not updated:
        raise InvalidDiscountCode('El código ya fue utilizado.')

    discount_code.used = True
    discount_code.used_at = now
    logger.info('Código %s canjeado por usuario=%s', discount_code.code, user.pk)
    return discount_code
