import os
import sys
from datetime import timedelta
from decimal import Decimal
from pathlib import Path
from dotenv import load_dotenv
from django.core.exceptions import ImproperlyConfigured

BASE_DIR = Path(__file__).resolve().parent.parent

for env_file in (BASE_DIR.parent / '.env', BASE_DIR / '.env'):
    if env_file.exists():
        load_dotenv(env_file)
        break

DEBUG = os.getenv('DEBUG', 'True') == 'True'
ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', '*').split(',')

DEV_SECRET_KEY = 'storefront-dev-secret-key'
SECRET_KEY = os.getenv('DJANGO_SECRET_KEY') or os.getenv('SECRET_KEY') or DEV_SECRET_KEY
if SECRET_KEY == DEV_SECRET_KEY and not DEBUG:
    raise ImproperlyConfigured(
        'Set DJANGO_SECRET_KEY (or SECRET_KEY); the development key is not allowed with DEBUG off.'
    )

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'drf_spectacular',
    'rest_framework_simplejwt.token_blacklist',
    'apps.common',
    'apps.catalog',
    'apps.users',
    'apps.carts',
    'apps.orders.apps.OrdersConfig',
    'apps.auth.apps.AuthConfig',
]

REST_FRAMEWORK = {
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
    ],
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ],
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'EXCEPTION_HANDLER': 'apps.api.exceptions.global_exception_handler',
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=int(os.getenv('JWT_ACCESS_MINUTES', '30'))),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=int(os.getenv('JWT_REFRESH_DAYS', '7'))),
}

SPECTACULAR_SETTINGS = {
    'TITLE': 'Storefront API',
    'DESCRIPTION': 'Storefront backend: guest and member carts, checkout, order history.',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENT_SPLIT_REQUEST': True,
    'SCHEMA_PATH_PREFIX': r'/api',
    'SERVE_PERMISSIONS': [],
}

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'storefront.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
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

WSGI_APPLICATION = 'storefront.wsgi.application'
ASGI_APPLICATION = 'storefront.asgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.getenv('POSTGRES_DB', 'storefront'),
        'USER': os.getenv('POSTGRES_USER', 'storefront'),
        'PASSWORD': os.getenv('POSTGRES_PASSWORD', 'storefront'),
        'HOST': os.getenv('POSTGRES_HOST', 'db'),
        'PORT': os.getenv('POSTGRES_PORT', '5432'),
    }
}

# Redis cache; catalog lookups tolerate an unavailable cache.
REDIS_URL = os.getenv('REDIS_URL', 'redis://redis:6379/1')
CACHE_TTL = int(os.getenv('CACHE_TTL', '300'))  # seconds

CACHES = {
    'default': {
        'BACKEND': 'django_redis.cache.RedisCache',
        'LOCATION': REDIS_URL,
        'OPTIONS': {
            'CLIENT_CLASS': 'django_redis.client.DefaultClient',
            'IGNORE_EXCEPTIONS': True,
        },
        'KEY_PREFIX': os.getenv('CACHE_KEY_PREFIX', 'storefront'),
        'TIMEOUT': CACHE_TTL,
    }
}

# SQLite and local memory under pytest
USING_PYTEST = (
    os.getenv('PYTEST_CURRENT_TEST') is not None
    or any(os.path.basename(arg).startswith('pytest') for arg in sys.argv)
    or 'pytest' in sys.modules
)

if 'test' in sys.argv or USING_PYTEST:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'storefront-test-cache',
            'TIMEOUT': 60,
        }
    }

AUTH_PASSWORD_VALIDATORS = []

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = os.getenv('STATIC_ROOT', str(BASE_DIR / 'staticfiles'))
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

AUTH_USER_MODEL = 'users.User'

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'plain': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'plain',
        },
    },
    'loggers': {
        'apps': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}

# Storefront behaviour
STOREFRONT_DELIVERY_COST = Decimal(os.getenv('STOREFRONT_DELIVERY_COST', '500'))
STOREFRONT_CURRENCY_SYMBOL = os.getenv('STOREFRONT_CURRENCY_SYMBOL', '₸')
# Number the order summary is sent to.
STOREFRONT_HANDOFF_PHONE = os.getenv('STOREFRONT_HANDOFF_PHONE', '')
if not STOREFRONT_HANDOFF_PHONE and not (DEBUG or USING_PYTEST):
    raise ImproperlyConfigured('Set STOREFRONT_HANDOFF_PHONE; orders cannot be handed off without it.')
STOREFRONT_OUTBOX_MAX_ATTEMPTS = int(os.getenv('STOREFRONT_OUTBOX_MAX_ATTEMPTS', '5'))
STOREFRONT_OUTBOX_LEASE_SECONDS = int(os.getenv('STOREFRONT_OUTBOX_LEASE_SECONDS', '300'))
STOREFRONT_OUTBOX_WARN_BACKLOG = int(os.getenv('STOREFRONT_OUTBOX_WARN_BACKLOG', '100'))
# Receives cancellation notices; empty disables them.
STOREFRONT_ADMIN_EMAIL = os.getenv('STOREFRONT_ADMIN_EMAIL', '')

# Extra readiness checks, run once the database answers.
READINESS_CHECKS = {
    'outbox': 'apps.orders.health.outbox_check',
}

EMAIL_BACKEND = os.getenv('EMAIL_BACKEND', 'django.core.mail.backends.smtp.EmailBackend')
EMAIL_HOST = os.getenv('EMAIL_HOST', 'localhost')
EMAIL_PORT = int(os.getenv('EMAIL_PORT', '25'))
EMAIL_HOST_USER = os.getenv('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = os.getenv('EMAIL_HOST_PASSWORD', '')
EMAIL_USE_TLS = os.getenv('EMAIL_USE_TLS', 'False') == 'True'
DEFAULT_FROM_EMAIL = os.getenv('DEFAULT_FROM_EMAIL', 'shop@localhost')
if USING_PYTEST:
    EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

# Guest carts live in the session for this long.
SESSION_COOKIE_AGE = int(os.getenv('GUEST_CART_DAYS', '30')) * 24 * 60 * 60
