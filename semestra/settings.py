# semestra/settings.py
"""
Django settings for the semestra project.

Only the semester progression engine lives here: HTTP routing, accounts and
authentication belong to the surrounding services and are not installed.
"""

import os
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

# Apps live under apps/ and are imported by their short label
# (``semesters``, ``progress``, ...).
APPS_DIR = BASE_DIR / 'apps'
if str(APPS_DIR) not in sys.path:
    sys.path.insert(0, str(APPS_DIR))

SECRET_KEY = os.environ.get('SEMESTRA_SECRET_KEY', 'insecure-development-key')

DEBUG = os.environ.get('SEMESTRA_DEBUG', 'false').lower() in ('1', 'true', 'yes')

ALLOWED_HOSTS = [h for h in os.environ.get('SEMESTRA_ALLOWED_HOSTS', '').split(',') if h]


# =============================================================================
# APPLICATIONS
# =============================================================================

INSTALLED_APPS = [
    'common.apps.CommonConfig',
    'students.apps.StudentsConfig',
    'semesters.apps.SemestersConfig',
    'attendance.apps.AttendanceConfig',
    'progress.apps.ProgressConfig',
    'validation.apps.ValidationConfig',
]

MIDDLEWARE = [
    'common.middleware.CallerContextMiddleware',
]


# =============================================================================
# DATABASE
# =============================================================================

DATABASES = {
    'default': {
        'ENGINE': os.environ.get('SEMESTRA_DB_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': os.environ.get('SEMESTRA_DB_NAME', str(BASE_DIR / 'semestra.sqlite3')),
        'USER': os.environ.get('SEMESTRA_DB_USER', ''),
        'PASSWORD': os.environ.get('SEMESTRA_DB_PASSWORD', ''),
        'HOST': os.environ.get('SEMESTRA_DB_HOST', ''),
        'PORT': os.environ.get('SEMESTRA_DB_PORT', ''),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# =============================================================================
# INTERNATIONALIZATION
# =============================================================================

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('SEMESTRA_TIME_ZONE', 'UTC')
USE_I18N = True
USE_TZ = True


# =============================================================================
# SEMESTER SYSTEM
# =============================================================================
# Any key left out falls back to common.conf.DEFAULTS.

SEMESTER_SYSTEM = {
    'VALIDATION_PERIOD_DAYS': 30,
    'BATCH_SIZE': 5,
    'BATCH_PAUSE_SECONDS': 0.1,
    'SYSTEM_VALIDATOR_ID': 'system',
}


# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.environ.get('SEMESTRA_LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
        'audit': {
            'format': '{asctime} AUDIT {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
        'audit_console': {
            'class': 'logging.StreamHandler',
            'formatter': 'audit',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
        'academic_audit': {
            'handlers': ['audit_console'],
            'level': 'INFO',
            'propagate': False,
        },
        **{
            app: {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False}
            for app in ('common', 'students', 'semesters', 'attendance', 'progress', 'validation')
        },
    },
}
