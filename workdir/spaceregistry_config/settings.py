import os
from pathlib import Path
from dotenv import load_dotenv
import dj_database_url
from datetime import timedelta
import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration
from sentry_sdk.integrations.celery import CeleryIntegration

BASE_DIR = Path(__file__).resolve().parent.parent
PROJECT_ROOT_DIR = BASE_DIR.parent

dotenv_path = PROJECT_ROOT_DIR / '.env'
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path)


def env_flag(name, default):
    return os.getenv(name, default).lower() in ('true', '1', 't')


SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-defaultfallbacksecretkeyforcheck')
DEBUG = env_flag('DJANGO_DEBUG', 'True')

ALLOWED_HOSTS_ENV = os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1')
ALLOWED_HOSTS = [host.strip() for host in ALLOWED_HOSTS_ENV.split(',') if host.strip()]

INSTALLED_APPS = [
    'django.contrib.admin', 'django.contrib.auth', 'django.contrib.contenttypes',
    'django.contrib.sessions', 'django.contrib.messages', 'django.contrib.staticfiles',
    'rest_framework', 'rest_framework_simplejwt',
    'guardian', # django-guardian
    'drf_spectacular', 'drf_spectacular_sidecar',
    'core.apps.CoreConfig', 'namespaces.apps.NamespacesConfig',
    'notifications.apps.NotificationsConfig', 'api.apps.ApiConfig',
]

AUTHENTICATION_BACKENDS = (
    'django.contrib.auth.backends.ModelBackend', # Default
    'guardian.backends.ObjectPermissionBackend', # django-guardian
)

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware', 'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware', 'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware', 'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]
ROOT_URLCONF = 'spaceregistry_config.urls'
TEMPLATES = [{'BACKEND': 'django.template.backends.django.DjangoTemplates', 'DIRS': [], 'APP_DIRS': True, 'OPTIONS': {'context_processors': ['django.template.context_processors.request', 'django.contrib.auth.context_processors.auth', 'django.contrib.messages.context_processors.messages']}}]
WSGI_APPLICATION = 'spaceregistry_config.wsgi.application'

DATABASES = {'default': dj_database_url.config(default=os.getenv('DATABASE_URL', f"sqlite:///{PROJECT_ROOT_DIR / 'db_dev_fallback.sqlite3'}"), conn_max_age=600)}

# Redis when available; the namespace table cache only needs a shared cache in multi-process deployments
REDIS_URL = os.getenv('REDIS_URL')
if REDIS_URL:
    CACHES = {'default': {'BACKEND': 'django_redis.cache.RedisCache', 'LOCATION': REDIS_URL, 'OPTIONS': {'CLIENT_CLASS': 'django_redis.client.DefaultClient'}}}
else:
    CACHES = {'default': {'BACKEND': 'django.core.cache.backends.locmem.LocMemCache', 'LOCATION': 'spaceregistry'}}

AUTH_PASSWORD_VALIDATORS = [{'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},{'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},{'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},{'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'}]
LANGUAGE_CODE = 'en-us'; TIME_ZONE = 'UTC'; USE_I18N = True; USE_TZ = True
STATIC_URL = 'static/'; DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

GUARDIAN_RAISE_403 = True

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': ['rest_framework_simplejwt.authentication.JWTAuthentication', 'rest_framework.authentication.SessionAuthentication'],
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.IsAuthenticatedOrReadOnly'],
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.LimitOffsetPagination',
    'PAGE_SIZE': 25,
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'EXCEPTION_HANDLER': 'core.exceptions.api_exception_handler',
}
SIMPLE_JWT = {'ACCESS_TOKEN_LIFETIME': timedelta(minutes=15), 'REFRESH_TOKEN_LIFETIME': timedelta(days=7),'ROTATE_REFRESH_TOKENS': True, 'BLACKLIST_AFTER_ROTATION': False, 'UPDATE_LAST_LOGIN': True, 'ALGORITHM': 'HS256','AUTH_HEADER_TYPES': ('Bearer',), 'USER_ID_FIELD': 'id', 'USER_ID_CLAIM': 'user_id'}

SPECTACULAR_SETTINGS = {
    'TITLE': 'Space Registry API', 'DESCRIPTION': 'API documentation for the space (namespace) registry.',
    'VERSION': '0.1.0', 'SERVE_INCLUDE_SCHEMA': True,
    'SWAGGER_UI_DIST': 'SIDECAR', 'SWAGGER_UI_FAVICON_HREF': 'SIDECAR', 'REDOC_DIST': 'SIDECAR',
}

CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', REDIS_URL or 'memory://')
CELERY_TASK_ALWAYS_EAGER = env_flag('CELERY_TASK_ALWAYS_EAGER', 'False')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {'format': '[{levelname}] {name}: {message}', 'style': '{'},
    },
    'handlers': {
        'console': {'class': 'logging.StreamHandler', 'formatter': 'simple'},
    },
    'root': {'handlers': ['console'], 'level': 'WARNING'},
    'loggers': {
        'namespaces': {'handlers': ['console'], 'level': os.getenv('CC_SPACES_LOG_LEVEL', 'INFO'), 'propagate': False},
        'notifications': {'handlers': ['console'], 'level': os.getenv('CC_SPACES_LOG_LEVEL', 'INFO'), 'propagate': False},
    },
}

SENTRY_DSN = os.getenv('CC_SENTRY_DSN')
if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN, integrations=[DjangoIntegration(), CeleryIntegration()],
        traces_sample_rate=float(os.getenv('CC_SENTRY_TRACES_SAMPLE_RATE', '0.1')),
        send_default_pii=False, environment=os.getenv('CC_ENVIRONMENT_NAME', 'development'),
        release=os.getenv('APP_RELEASE_VERSION', 'spaceregistry@0.1.0-dev')
    )

# --- Space registry ---
SPACES_ENABLE_SPACE_ARCHIVING = env_flag('CC_SPACES_ENABLE_ARCHIVING', 'True')
SPACES_AUTO_ADD_ADMINS_TO_USER_GROUPS = env_flag('CC_SPACES_AUTO_GROUP_SYNC', 'False')
SPACES_SHARED_ADMIN_GROUP = os.getenv('CC_SPACES_SHARED_ADMIN_GROUP', 'SpaceAdmin')
# Extra group names that count as "still a space administrator somewhere" when deciding
# whether to keep the shared admin group on removal.
SPACES_ADMIN_LIKE_GROUPS = [g.strip() for g in os.getenv('CC_SPACES_ADMIN_LIKE_GROUPS', '').split(',') if g.strip()]

# Core namespaces of the host platform (id -> canonical name) and the subset spaces may coexist with.
SPACES_CANONICAL_NAMESPACES = {
    -2: 'Media', -1: 'Special',
    0: 'Main', 1: 'Talk', 2: 'User', 3: 'User_talk', 4: 'Project', 5: 'Project_talk',
    6: 'File', 7: 'File_talk', 8: 'MediaWiki', 9: 'MediaWiki_talk', 10: 'Template', 11: 'Template_talk',
    12: 'Help', 13: 'Help_talk', 14: 'Category', 15: 'Category_talk',
}
SPACES_VALID_NAMESPACES = [0, 2, 4, 6, 10, 12, 14]
# Namespaces registered by other platform extensions (id -> name).
SPACES_EXTENSION_NAMESPACES = {}
