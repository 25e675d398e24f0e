"""
Django E-commerce - Base Settings
Configuración base: catálogo, carritos, códigos de descuento y recordatorios.
"""
import os
from pathlib import Path

os.environ.setdefault('DJANGO_ENV', 'development')

import environ
from celery.schedules import crontab

env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, []),
    SECRET_KEY=(str, ''),
    DATABASE_URL=(str, 'sqlite:///db.sqlite3'),
    SITE_NAME=(str, 'E-COM'),
    LOG_LEVEL=(str, 'INFO'),
    # Email
    EMAIL_BACKEND=(str, 'django.core.mail.backends.console.EmailBackend'),
    EMAIL_HOST=(str, 'smtp.gmail.com'),
    EMAIL_PORT=(int, 587),
    EMAIL_HOST_USER=(str, ''),
    EMAIL_HOST_PASSWORD=(str, ''),
    EMAIL_USE_TLS=(bool, True),
    EMAIL_USE_SSL=(bool, False),
    EMAIL_TIMEOUT=(int, 30),
    DEFAULT_FROM_EMAIL=(str, ''),
    # Celery
    CELERY_BROKER_URL=(str, 'redis://localhost:6379/0'),
    CELERY_RESULT_BACKEND=(str, ''),
    # Carrito abandonado
    ABANDONED_CART_IDLE_HOURS=(int, 24),
    ABANDONED_CART_MAX_REMINDERS=(int, 3),
    ABANDONED_CART_DISCOUNT_PERCENT=(int, 10),
    ABANDONED_CART_CODE_VALID_DAYS=(int, 3),
    ABANDONED_CART_CODE_MAX_ATTEMPTS=(int, 10),
    ABANDONED_CART_LOCK_TIMEOUT=(int, 60 * 60 * 6),
    ABANDONED_CART_CRON_HOUR=(int, 0),
    ABANDONED_CART_CRON_MINUTE=(int, 0),
)

# Build paths
BASE_DIR = Path(__file__).resolve().parent.parent.parent
APPS_DIR = BASE_DIR / 'apps'

# Read .env file (if present)
if (BASE_DIR / '.env').exists():
    environ.Env.read_env(BASE_DIR / '.env')

# SECURITY
SECRET_KEY = env('SECRET_KEY') or 'django-insecure-CHANGE-THIS-IN-PRODUCTION-use-env'
DEBUG = env('DEBUG')
ALLOWED_HOSTS = env.list('ALLOWED_HOSTS', default=['localhost', '127.0.0.1'])

# Application definition
DJANGO_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
]

LOCAL_APPS = [
    'apps.core',
    'apps.accounts',
    'apps.products',
    'apps.cart',
    'apps.coupons',
]

INSTALLED_APPS = DJANGO_APPS + LOCAL_APPS

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'
WSGI_APPLICATION = 'config.wsgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

# Database
DATABASES = {
    'default': env.db('DATABASE_URL')
}

# Password validation - Security
AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator', 'OPTIONS': {'min_length': 10}},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

# Internationalization
LANGUAGE_CODE = 'es'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# Static files
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'whitenoise.storage.CompressedManifestStaticFilesStorage'},
}

# Default primary key
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Custom User
AUTH_USER_MODEL = 'accounts.User'

SITE_NAME = env('SITE_NAME')

# Email
EMAIL_BACKEND = env('EMAIL_BACKEND')
EMAIL_HOST = env('EMAIL_HOST')
EMAIL_PORT = env.int('EMAIL_PORT')
EMAIL_HOST_USER = env('EMAIL_HOST_USER')
EMAIL_HOST_PASSWORD = env('EMAIL_HOST_PASSWORD')
EMAIL_USE_TLS = env.bool('EMAIL_USE_TLS')
EMAIL_USE_SSL = env.bool('EMAIL_USE_SSL')
# Un envío colgado no debe bloquear el barrido de recordatorios.
EMAIL_TIMEOUT = env.int('EMAIL_TIMEOUT')
_default_from = env('DEFAULT_FROM_EMAIL') or EMAIL_HOST_USER or 'no-reply@localhost'
DEFAULT_FROM_EMAIL = _default_from
SERVER_EMAIL = _default_from

# Cache (lock del barrido diario)
CACHES = {
    'default': env.cache('CACHE_URL', default='locmemcache://'),
}

# Carrito abandonado
ABANDONED_CART_IDLE_HOURS = env('ABANDONED_CART_IDLE_HOURS')
ABANDONED_CART_MAX_REMINDERS = env('ABANDONED_CART_MAX_REMINDERS')
ABANDONED_CART_DISCOUNT_PERCENT = env('ABANDONED_CART_DISCOUNT_PERCENT')
ABANDONED_CART_CODE_VALID_DAYS = env('ABANDONED_CART_CODE_VALID_DAYS')
ABANDONED_CART_CODE_MAX_ATTEMPTS = env('ABANDONED_CART_CODE_MAX_ATTEMPTS')
ABANDONED_CART_LOCK_TIMEOUT = env('ABANDONED_CART_LOCK_TIMEOUT')

# Celery
CELERY_BROKER_URL = env('CELERY_BROKER_URL')
CELERY_RESULT_BACKEND = env('CELERY_RESULT_BACKEND') or None
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_ACKS_LATE = True
CELERY_BEAT_SCHEDULE = {
    'abandoned-cart-reminders': {
        'task': 'apps.cart.tasks.send_abandoned_cart_reminders_task',
        'schedule': crontab(
            hour=env('ABANDONED_CART_CRON_HOUR'),
            minute=env('ABANDONED_CART_CRON_MINUTE'),
        ),
    },
}

# Logging
LOG_LEVEL = env('LOG_LEVEL')
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'apps': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': True,
        },
        'celery': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}
