from pathlib import Path

from celery.schedules import crontab
from decouple import Csv, config

# -------------------------------
# Diretórios base
# -------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent

# -------------------------------
# Segurança e debug
# -------------------------------
SECRET_KEY = config('SECRET_KEY', default='django-insecure-dev-only')
DEBUG = config('DEBUG', default=False, cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1,testserver', cast=Csv())

# -------------------------------
# Cookies & CSRF
# -------------------------------
SESSION_COOKIE_SECURE   = config('SESSION_COOKIE_SECURE', default=False, cast=bool) # Desenvolvido para HTTPS
SESSION_COOKIE_HTTPONLY = config('SESSION_COOKIE_HTTPONLY', default=True, cast=bool)
SESSION_COOKIE_SAMESITE = config('SESSION_COOKIE_SAMESITE', default='Lax')
CSRF_COOKIE_SECURE      = config('CSRF_COOKIE_SECURE', default=False, cast=bool) # Desenvolvido para HTTPS
CSRF_COOKIE_SAMESITE    = config('CSRF_COOKIE_SAMESITE', default='Lax')

SECURE_SSL_REDIRECT     = config('SECURE_SSL_REDIRECT', default=False, cast=bool)
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')

# -------------------------------
# CORS
# -------------------------------
CORS_ALLOW_ALL_ORIGINS = config('CORS_ALLOW_ALL_ORIGINS', default=False, cast=bool)
CORS_ALLOW_CREDENTIALS = config('CORS_ALLOW_CREDENTIALS', default=True, cast=bool)
CSRF_TRUSTED_ORIGINS   = config('CSRF_TRUSTED_ORIGINS', default='http://localhost:3000', cast=Csv())
CORS_ALLOWED_ORIGINS   = config('CORS_ALLOWED_ORIGINS', default='http://localhost:3000', cast=Csv())

# -------------------------------
# Celery
# -------------------------------
CELERY_BROKER_URL                 = config('CELERY_BROKER_URL', default='memory://')
CELERY_RESULT_BACKEND             = config('CELERY_RESULT_BACKEND', default=None)
CELERY_TASK_ACKS_LATE             = True
CELERY_TASK_REJECT_ON_WORKER_LOST = True
CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_TASK_ALWAYS_EAGER          = config('CELERY_TASK_ALWAYS_EAGER', default=False, cast=bool)
CELERY_ACCEPT_CONTENT             = ["json"]
CELERY_TASK_SERIALIZER            = "json"
CELERY_TASK_QUEUES = {
    "default":     {"exchange": "default",     "routing_key": "default"},
    "scheduling":  {"exchange": "scheduling",  "routing_key": "scheduling"},
    "billing":     {"exchange": "billing",     "routing_key": "billing"},
}
CELERY_TASK_DEFAULT_QUEUE = 'default'
CELERY_TASK_DEFAULT_EXCHANGE = 'default'
CELERY_TASK_DEFAULT_ROUTING_KEY = 'default'

# --- AGENDADOR (CELERY BEAT) ---
CELERY_BEAT_SCHEDULE = {
    # Estende as recorrências sem data final toda SEGUNDA às 2 da manhã.
    'extend-recurrences-weekly': {
        'task': 'clinica_api.tasks.extend_recurrences',
        'schedule': crontab(minute=0, hour=2, day_of_week=1),  # 0=Dom, 1=Seg...
    },
    # Gera as faturas do mês corrente no dia 1, às 6h (uma task por clínica ativa).
    'generate-monthly-invoices': {
        'task': 'clinica_api.tasks.schedule_monthly_invoices',
        'schedule': crontab(minute=0, hour=6, day_of_month=1),
    },
}

# -------------------------------
# Faturamento & agenda
# -------------------------------
INVOICE_DUE_DAY                = config('INVOICE_DUE_DAY', default=15, cast=int)
INVOICE_REGENERATION_TIMEOUT_MS = config('INVOICE_REGENERATION_TIMEOUT_MS', default=30000, cast=int)
RECURRENCE_EXTENSION_MONTHS    = config('RECURRENCE_EXTENSION_MONTHS', default=3, cast=int)
RECURRENCE_HORIZON_MONTHS      = config('RECURRENCE_HORIZON_MONTHS', default=2, cast=int)

# -------------------------------
# Apps, Middleware, URLs
# -------------------------------
INSTALLED_APPS = [
    'corsheaders',
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'drf_yasg',
    'django_prometheus',
    'clinica_api.apps.ClinicaApiConfig',
    'plugins.django_interface.apps.DjangoInterfaceConfig',
]

MIDDLEWARE = [
    'django_prometheus.middleware.PrometheusBeforeMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'plugins.django_interface.request_middleware.RequestContextMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django_prometheus.middleware.PrometheusAfterMiddleware',
]

ROOT_URLCONF = 'clinica_api.urls'
WSGI_APPLICATION = 'clinica_api.wsgi.application'
ASGI_APPLICATION = 'clinica_api.asgi.application'

# -------------------------------
# Templates
# -------------------------------
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

# -------------------------------
# REST Framework
# -------------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework.authentication.SessionAuthentication",
        "rest_framework.authentication.BasicAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
}
SWAGGER_SETTINGS = {
    'SECURITY_DEFINITIONS': {
        'Basic': {'type': 'basic'},
    },
}

# -------------------------------
# Banco de Dados
# -------------------------------
DB_ENGINE = config('DB_ENGINE', default='sqlite')

if DB_ENGINE == 'postgresql':
    DATABASES = {
        'default': {
            'ENGINE':   'django.db.backends.postgresql',
            'NAME':     config('DB_NAME'),
            'USER':     config('DB_USER'),
            'PASSWORD': config('DB_PASS'),
            'HOST':     config('DB_HOST'),
            'PORT':     config('DB_PORT', default='5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME':   config('DB_NAME', default=str(BASE_DIR / 'db.sqlite3')),
        }
    }

# -------------------------------
# Internacionalização
# -------------------------------
LANGUAGE_CODE = 'pt-br'
TIME_ZONE     = 'America/Sao_Paulo'
USE_I18N      = True
USE_TZ        = True

# -------------------------------
# Arquivos estáticos
# -------------------------------
STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedStaticFilesStorage"},
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# -------------------------------
# Logging
# -------------------------------
# structlog é configurado em config/structlog_config.py (manage.py / asgi / wsgi / celery)
LOGGING_CONFIG = None
