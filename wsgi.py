#!/usr/bin/env python3
"""
WSGI entry point for gunicorn
"""

import logging

from robust_logging import setup_robust_logging

setup_robust_logging()

try:
    from app import app as application

    logging.info("WSGI: LobsterPad application loaded successfully")

except ImportError as e:
    logging.error(f"WSGI: Failed to import Flask application: {e}")
    raise
