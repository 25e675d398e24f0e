"""Tareas programadas del carrito."""
import logging

from celery import shared_task

from .abandonment import LOCK_KEY, send_abandoned_cart_reminders, sweep_lock

logger = logging.getLogger(__name__)


@shared_task(name='apps.cart.tasks.send_abandoned_cart_reminders_task')
def send_abandoned_cart_reminders_task():
    """
    Entrada del beat diario. Si otra ejecución sigue en curso
    (lock en cache) esta termina sin hacer nada.
    """
    with sweep_lock() as acquired:
        if not acquired:
            logger.warning('Barrido de carritos abandonados ya en ejecución; se omite')
            return {'locked': True}
        return send_abandoned_cart_reminders()
