import logging
import math

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils import timezone

logger = logging.getLogger(__name__)


def _default_from_email():
    configured = (getattr(settings, "DEFAULT_FROM_EMAIL", "") or "").strip()
    if configured:
        return configured
    return "no-reply@localhost"


def _site_context():
    return {
        "site_name": getattr(settings, "SITE_NAME", "") or "E-COM",
    }


def send_templated_email(
    subject,
    to_emails,
    template_key,
    context=None,
    reply_to=None,
):
    """
    Renderiza emails/<template_key>.txt/.html y envía.
    Devuelve el número de mensajes enviados; 0 si falló el render o el envío.
    """
    recipients = [e for e in (to_emails or []) if e]
    if not recipients:
        return 0

    payload = _site_context()
    if context:
        payload.update(context)

    try:
        text_body = render_to_string(f"emails/{template_key}.txt", payload)
        html_body = render_to_string(f"emails/{template_key}.html", payload)
    except Exception:
        logger.exception(
            "Error renderizando template de email '%s'",
            template_key,
        )
        return 0

    headers = {
        "X-Auto-Response-Suppress": "All",
        "Precedence": "auto",
        "Auto-Submitted": "auto-generated",
    }

    message = EmailMultiAlternatives(
        subject=subject.strip().replace("\n", " "),
        body=text_body,
        from_email=_default_from_email(),
        to=recipients,
        reply_to=reply_to,
        headers=headers,
    )
    message.attach_alternative(html_body, "text/html")
    try:
        return message.send(fail_silently=False)
    except Exception:
        logger.exception(
            "Error enviando email '%s' a %s",
            template_key,
            recipients,
        )
        return 0


def _days_left(expires_at, now):
    seconds = (expires_at - now).total_seconds()
    return max(1, math.ceil(seconds / 86400))


def notify_cart_abandoned(email, items, discount_code, now=None):
    """
    Recordatorio de carrito abandonado con el código de descuento.
    items: [{'name', 'quantity', 'discount'}]. La vigencia del texto sale
    del expires_at guardado. Devuelve True solo si el backend confirmó el envío.
    """
    if not email or not items:
        return False
    now = now or timezone.now()
    sent = send_templated_email(
        subject=(
            f"Tienes productos esperando: {discount_code.discount}% de "
            f"descuento con el código {discount_code.code}"
        ),
        to_emails=[email],
        template_key="customer_cart_abandoned",
        context={
            "items": items,
            "code": discount_code.code,
            "discount": discount_code.discount,
            "expires_at": discount_code.expires_at,
            "days_left": _days_left(discount_code.expires_at, now),
        },
    )
    return sent > 0
