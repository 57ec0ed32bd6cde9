"""
Gunicorn configuration for production deployment.

Usage:
    gunicorn -c gunicorn_config.py app:app

With the default in-memory story store every worker keeps its own stories;
set USE_DB_STORAGE=true to share them through SQLite.
"""

import os
import multiprocessing

from src.storyforge.config import get_env_int, get_env_str

# Server socket
bind = get_env_str('GUNICORN_BIND', '0.0.0.0:5000')
backlog = 2048

# Story generation blocks on the LLM call, so threads keep other requests moving
workers = get_env_int('GUNICORN_WORKERS', multiprocessing.cpu_count() * 2 + 1, min_value=1, max_value=100)
threads = get_env_int('GUNICORN_THREADS', 4, min_value=1, max_value=64)
worker_class = 'gthread'
timeout = get_env_int('GUNICORN_TIMEOUT', 120, min_value=1, max_value=3600)
graceful_timeout = 30
keepalive = 5

# Logging
accesslog = get_env_str('GUNICORN_ACCESS_LOG', '-')  # '-' means stdout
errorlog = get_env_str('GUNICORN_ERROR_LOG', '-')  # '-' means stderr
loglevel = get_env_str('GUNICORN_LOG_LEVEL', 'info', allowed_values=['debug', 'info', 'warning', 'error', 'critical'])
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = 'storyforge'

daemon = False
pidfile = os.getenv('GUNICORN_PIDFILE', None)

preload_app = True
