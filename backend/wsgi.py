# backend/wsgi.py
from multishop import create_app

app = create_app()
