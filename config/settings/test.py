"""Test settings.

File-backed SQLite, eager Celery and the locmem email backend, so the test
suite needs neither PostgreSQL, a broker nor an SMTP server. Writers take
the database lock at BEGIN (IMMEDIATE), which serialises concurrent booking
transactions the way row locks do on PostgreSQL.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'test_library_booking.sqlite3',  # noqa: F405
        'OPTIONS': {
            'transaction_mode': 'IMMEDIATE',
            'timeout': 20,
        },
        'TEST': {
            'NAME': BASE_DIR / 'test_library_booking.sqlite3',  # noqa: F405
        },
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

LOGGING['root']['level'] = 'CRITICAL'  # noqa: F405
LOGGING['loggers']['apps']['level'] = 'WARNING'  # noqa: F405
LOGGING['loggers']['shared']['level'] = 'WARNING'  # noqa: F405
