"""
Gunicorn configuration for production deployment.
"""
import os

# Server socket
# PORT is set by the host; default to 3000 for local runs (the frontend expects it)
PORT = int(os.environ.get("PORT", 3000))
bind = f"0.0.0.0:{PORT}"
backlog = 2048

# Worker processes
# Socket.IO rooms and the in-memory live feed live in one process: keep a single worker
workers = 1
worker_class = "eventlet"
worker_connections = 1000
timeout = 120
keepalive = 2
graceful_timeout = 30

# Logging
accesslog = "-"
errorlog = "-"
loglevel = "info"

# Process naming
proc_name = "larga-server"


def worker_int(worker):
    """Called when a worker receives INT or QUIT signal."""
    import logging
    logging.warning(f"Worker {worker.pid} received INT/QUIT signal")
