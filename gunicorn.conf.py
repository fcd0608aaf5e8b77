# CricTally Gunicorn Configuration
#
# Live match state sits in the process-local LiveStateCache
# (database/live_cache.py). A second worker would hold its own copy and
# deliveries would land on whichever copy served the request. Keep workers = 1;
# threads are safe because the cache is lock-guarded.

wsgi_app = "app:create_app()"
bind = "127.0.0.1:5000"
workers = 1
threads = 4
timeout = 60
accesslog = "logs/access.log"
loglevel = "info"
