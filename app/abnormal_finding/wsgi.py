"""
WSGI config for the abnormal finding project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "abnormal_finding.settings")

application = get_wsgi_application()
