"""
App Celery del proyecto.

El beat dispara las tareas programadas de CELERY_BEAT_SCHEDULE
(p. ej. el barrido diario de carritos abandonados):
  celery -A config worker -l info
  celery -A config beat -l info
"""
import os

from celery import Celery
from celery.signals import task_postrun, task_prerun
from django.db import close_old_connections

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('config')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()


@task_prerun.connect
@task_postrun.connect
def close_db_connections(**kwargs):
    """Cada ejecución toma y libera sus conexiones a la base de datos."""
    close_old_connections()
