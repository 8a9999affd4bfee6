# timeleave_api/wsgi.py
from timeleave_api import create_app

app = create_app()
