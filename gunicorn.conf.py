# gunicorn.conf.py
"""
Gunicorn configuration for RepairHub production deployment.

Run with:
    gunicorn repairhub.wsgi:application -c gunicorn.conf.py
"""
import multiprocessing
import os

# Server socket
bind = os.getenv('GUNICORN_BIND', '0.0.0.0:8000')
backlog = 2048

# Worker processes
# Each worker holds its own DB connection; stock mutations rely on row locks,
# never on in-process state, so any worker count is safe.
workers = int(os.getenv('GUNICORN_WORKERS', multiprocessing.cpu_count() * 2 + 1))
worker_class = 'sync'
timeout = int(os.getenv('GUNICORN_TIMEOUT', '60'))
keepalive = 5
max_requests = 1000
max_requests_jitter = 50

preload_app = True

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('GUNICORN_LOG_LEVEL', 'info')
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = 'repairhub-gunicorn'

# Graceful restart
graceful_timeout = 30

# TLS terminates at the load balancer
forwarded_allow_ips = '*'
secure_scheme_headers = {
    'X-FORWARDED-PROTO': 'https',
}
