"""Gunicorn configuration file."""

import os

# Server socket
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
backlog = 2048

# Sync attempts are serialized per book with an in-process lock, so all
# requests must be served by a single worker process. Concurrency comes from threads.
workers = 1
worker_class = "gthread"
threads = int(os.getenv("GUNICORN_THREADS", "8"))
max_requests = int(os.getenv("GUNICORN_MAX_REQUESTS", "0"))
timeout = int(os.getenv("GUNICORN_TIMEOUT", "120"))
graceful_timeout = int(os.getenv("GUNICORN_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.getenv("GUNICORN_KEEPALIVE", "5"))

reload = os.getenv("FLASK_ENV", "production") == "development"

# Logging
errorlog = os.getenv("GUNICORN_ERROR_LOG", "-")
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
accesslog = os.getenv("GUNICORN_ACCESS_LOG", "-")
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s"'

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

forwarded_allow_ips = os.getenv("GUNICORN_FORWARDED_ALLOW_IPS", "127.0.0.1,::1")

preload_app = False


def on_starting(server):
    """Log when the server is starting."""
    server.log.info("Gunicorn server is starting")


def post_worker_init(worker):
    """Log when a worker is initialized."""
    worker.log.info(f"Worker {worker.pid} initialized")


def worker_exit(server, worker):
    """Log when a worker exits."""
    server.log.info(f"Worker {worker.pid} exited")
