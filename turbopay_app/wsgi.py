# turbopay_app/wsgi.py
# -*- coding: utf-8 -*-
from turbopay_app import create_app

app = create_app()
