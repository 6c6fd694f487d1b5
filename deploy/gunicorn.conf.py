import os

bind = os.getenv("GUNICORN_BIND", "127.0.0.1:8000")
# Slot, folder and calendar locks are per process; the database constraints
# are what hold across workers.
workers = int(os.getenv("WEB_CONCURRENCY", "2"))
worker_class = "uvicorn.workers.UvicornWorker"
wsgi_app = "app.main:app"
timeout = 60
graceful_timeout = 30
keepalive = 5
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
accesslog = "-"
errorlog = "-"
