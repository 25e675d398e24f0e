from .base import *

DEBUG = True

EMAIL_BACKEND = env('EMAIL_BACKEND')

# Sin broker en local: las tareas se ejecutan en el mismo proceso.
CELERY_TASK_ALWAYS_EAGER = env.bool('CELERY_TASK_ALWAYS_EAGER', default=True)
