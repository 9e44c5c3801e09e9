# backend/wsgi.py
from vales import create_app

app = create_app()
