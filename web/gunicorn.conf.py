import os


def cpu():
    return max(1, (os.cpu_count() or 1))


wsgi_app = "storefront.wsgi:application"
bind = os.getenv("GUNI_BIND", "0.0.0.0:8000")

# Worker processes
workers = int(os.getenv("GUNI_WORKERS", str(min(max(2, cpu() * 2), 8))))

# Threads per worker; gateway calls are blocking IO
worker_class = "gthread"
threads = int(os.getenv("GTHREADS", "4"))

# Timeouts must exceed the gateway budget: HTTP_TIMEOUT_SECS * (HTTP_RETRY_MAX + 1)
timeout = int(os.getenv("GUNI_TIMEOUT", "60"))
graceful_timeout = int(os.getenv("GUNI_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.getenv("GUNI_KEEPALIVE", "5"))

preload_app = True
max_requests = int(os.getenv("GUNI_MAX_REQUESTS", "2000"))
max_requests_jitter = int(os.getenv("GUNI_MAX_REQUESTS_JITTER", "200"))

# Application logs are JSON via Django LOGGING; these are gunicorn's own
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNI_LOGLEVEL", "info")
