"""
Envía recordatorios de carrito abandonado con código de descuento.
En producción lo dispara Celery beat a diario; este comando permite
lanzarlo a mano.

Uso:
  python manage.py send_abandoned_cart_reminders
  python manage.py send_abandoned_cart_reminders --hours 48
  python manage.py send_abandoned_cart_reminders --dry-run
"""
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import DatabaseError
from django.utils import timezone

from apps.cart.abandonment import (
    find_abandoned_carts,
    send_abandoned_cart_reminders,
    sweep_lock,
)


class Command(BaseCommand):
    help = 'Envía recordatorios con código de descuento a carritos abandonados.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--hours',
            type=int,
            default=None,
            help=(
                'Solo carritos sin cambios hace al menos N horas '
                f'(default: {settings.ABANDONED_CART_IDLE_HOURS})'
            ),
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Mostrar qué carritos se procesarían sin emitir códigos ni enviar correos.',
        )

    def handle(self, *args, **options):
        hours = options['hours']
        if hours is not None:
            hours = max(0, hours)
        dry_run = options['dry_run']
        now = timezone.now()

        if dry_run:
            try:
                carts = find_abandoned_carts(now=now, idle_hours=hours)
            except DatabaseError as e:
                raise CommandError(f'No se pudieron consultar los carritos: {e}')
            if not carts:
                self.stdout.write(self.style.WARNING('No hay carritos abandonados elegibles.'))
                return
            self.stdout.write(f'Carritos a procesar: {len(carts)}')
            for cart in carts:
                self.stdout.write(
                    f'  - #{cart.pk} {cart.user.email} '
                    f'({len(cart.items.all())} items, {cart.reminder_count} recordatorio(s))'
                )
            self.stdout.write(self.style.WARNING('Dry run: no se enviaron correos.'))
            return

        with sweep_lock() as acquired:
            if not acquired:
                self.stdout.write(self.style.WARNING(
                    'Barrido de carritos abandonados ya en ejecución; no se hace nada.'
                ))
                return
            try:
                summary = send_abandoned_cart_reminders(now=now, idle_hours=hours)
            except DatabaseError as e:
                raise CommandError(f'No se pudieron consultar los carritos: {e}')

        if not summary['candidates']:
            self.stdout.write(self.style.WARNING('No hay carritos abandonados elegibles.'))
            return

        self.stdout.write(f"Carritos a procesar: {summary['candidates']}")
        if summary['failed']:
            self.stderr.write(self.style.ERROR(f"  Fallidos: {summary['failed']} (ver logs)"))
        if summary['skipped']:
            self.stdout.write(self.style.WARNING(f"  Omitidos: {summary['skipped']}"))
        self.stdout.write(self.style.SUCCESS(f"Se enviaron {summary['sent']} recordatorio(s)."))
