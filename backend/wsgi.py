# backend/wsgi.py
from visitrack import create_app

app = create_app()
