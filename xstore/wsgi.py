"""WSGI config for the Xstore API."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'xstore.settings')

application = get_wsgi_application()
