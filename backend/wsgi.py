# backend/wsgi.py
from finops import create_app

app = create_app()
