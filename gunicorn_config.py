"""
Gunicorn configuration for the launcher production deployment

    gunicorn -c gunicorn_config.py app:app
"""
import multiprocessing
import os

# Server socket
bind = f"0.0.0.0:{os.environ.get('PORT', '5000')}"
backlog = 2048

# Worker processes
# Health probes and forwarded requests are network-bound, so use gevent workers:
# each worker holds many requests suspended on upstream I/O at once.
workers = multiprocessing.cpu_count() + 1
worker_class = "gevent"
worker_connections = 1000
# Must stay above PROBE_TIMEOUT_MS and FORWARD_READ_TIMEOUT
timeout = 330
keepalive = 5

# Logging
accesslog = "-"  # Log to stdout
errorlog = "-"  # Log to stderr
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = "launcher"

# Server mechanics
daemon = False
pidfile = None
umask = 0
user = None
group = None
tmp_upload_dir = None
