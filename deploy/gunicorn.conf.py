import multiprocessing
import os

bind = os.getenv("RECORDBOOK_BIND", "127.0.0.1:8000")
workers = int(os.getenv("RECORDBOOK_WORKERS", (multiprocessing.cpu_count() * 2) + 1))
worker_class = "uvicorn.workers.UvicornWorker"
wsgi_app = "recordbook.main:app"
timeout = 60
graceful_timeout = 30
keepalive = 5
loglevel = os.getenv("RECORDBOOK_LOG_LEVEL", "info")
accesslog = "-"
errorlog = "-"
