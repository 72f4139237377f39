"""Application settings."""

import os

DEBUG = False
HOST = "127.0.0.1"
PORT = 8000
WORKERS = 4
TIMEOUT = 30
LOG_LEVEL = "info"

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///app.db")
