# backend/wsgi.py
# WSGI entry point: `gunicorn wsgi:app` or FLASK_APP=wsgi.py for the CLI.
from oem_api import create_app

app = create_app()
