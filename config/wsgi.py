"""WSGI config for the library booking service.

This module exposes the WSGI application for production WSGI servers
such as gunicorn.
"""

import os
from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.prod')

application = get_wsgi_application()
