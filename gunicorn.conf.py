"""
Gunicorn configuration for the Aramis Brain API.

Run with:  gunicorn brain.main:app -c gunicorn.conf.py
Env vars that override defaults:
  PORT       : TCP port to bind (default: 8000)
  WORKERS    : number of worker processes (default: 2)
  LOG_LEVEL  : gunicorn log level, shared with the app (default: info)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Refresh endpoints are CPU-light but hold a DB connection per request.
workers = int(os.environ.get("WORKERS", "2"))

worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# A full refresh over many projects can take several seconds.
timeout = 120

# stdout/stderr only; the platform collects them.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
