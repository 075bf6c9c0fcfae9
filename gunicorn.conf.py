"""Gunicorn configuration for the blueprint chat service.

Launch with::

    gunicorn blueprint_chat.main:app -c gunicorn.conf.py

A chat turn is I/O bound (LLM, embedding and store calls), so one async
worker per container handles concurrency; scale out with replicas.
"""

import os

bind = os.environ.get("BIND", "0.0.0.0:8000")

workers = int(os.environ.get("WORKERS", "1"))
worker_class = "uvicorn.workers.UvicornWorker"

# Above server.requestTimeoutSeconds so the app answers 504 first
timeout = int(os.environ.get("WORKER_TIMEOUT", "180"))
graceful_timeout = 30
keepalive = 65

max_requests = 2000
max_requests_jitter = 200

accesslog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info")
