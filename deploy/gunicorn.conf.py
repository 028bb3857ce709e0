"""
Gunicorn Configuration

Production settings for the judge queue API.
Run with: gunicorn -c deploy/gunicorn.conf.py hackjudge.main:app

Workers are independent processes sharing one database; allocation safety
comes from the database write lock, not from in-process state.
"""
import os
import multiprocessing

# Server socket
bind = os.environ.get("BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes
workers = int(os.environ.get("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
# Longer than DB_BUSY_TIMEOUT_SECONDS so a waiting allocator is not killed mid-transaction
timeout = 60
keepalive = 5

# Logging
accesslog = os.environ.get("GUNICORN_ACCESS_LOG", "-")
errorlog = os.environ.get("GUNICORN_ERROR_LOG", "-")
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = "hackjudge"

# Server mechanics
daemon = False
pidfile = "/tmp/hackjudge-gunicorn.pid"

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

wsgi_app = "hackjudge.main:app"


def when_ready(server):
    """Called just after the server is started."""
    server.log.info(f"hackjudge ready with {workers} workers")
