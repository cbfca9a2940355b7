"""
WSGI config for busy2shopBackend project.
"""

import os

from django.core.wsgi import get_wsgi_application


os.environ.setdefault("DJANGO_SETTINGS_MODULE", "busy2shopBackend.settings")

application = get_wsgi_application()
