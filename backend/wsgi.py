# backend/wsgi.py
from retail import create_app

app = create_app()
