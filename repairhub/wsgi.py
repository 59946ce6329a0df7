"""
WSGI config for repairhub project.

Served by gunicorn in production (see gunicorn.conf.py).

For more information on this file, see
https://docs.djangoproject.com/en/6.0/howto/deployment/wsgi/
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'repairhub.settings')

application = get_wsgi_application()
