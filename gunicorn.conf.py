"""
Gunicorn Configuration

Uvicorn workers under Gunicorn for production deployment.
Every worker runs its own application lifespan (database engine, Redis pool).
"""

import multiprocessing
import os

# Server socket
bind = os.getenv("BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes
workers = int(os.getenv("WORKERS", min(multiprocessing.cpu_count() * 2 + 1, 8)))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 5000
max_requests_jitter = 500
# FTP download plus reconciliation of a full feed can take a while
timeout = 300
keepalive = 5
graceful_timeout = 30

# Process naming
proc_name = "stocksync-api"

# Server mechanics
daemon = False
pidfile = None

# Logging
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = None
