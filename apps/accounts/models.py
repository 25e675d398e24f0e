import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Usuario de la tienda. Los invitados compran una sola vez sin cuenta."""

    is_guest = models.BooleanField(
        'Invitado',
        default=False,
        help_text='Creado por el checkout de invitado; no recibe recordatorios.',
    )
    phone = models.CharField('Teléfono', max_length=20, blank=True)

    class Meta:
        verbose_name = 'Usuario'
        verbose_name_plural = 'Usuarios'

    def save(self, *args, **kwargs):
        # Username automático desde email (Django requiere username único).
        if not self.username and self.email:
            self.username = (self.email or '').lower()[:150]
            if (
                not self.pk
                and User.objects.filter(username=self.username).exists()
            ):
                base = self.email.split('@')[0]
                self.username = f"{base}_{uuid.uuid4().hex[:8]}"[:150]
        super().save(*args, **kwargs)

    @property
    def can_receive_reminders(self):
        """Solo clientes registrados con email reciben recordatorios."""
        return not self.is_guest and bool((self.email or '').strip())
