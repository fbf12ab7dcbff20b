from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from redis import Redis
from rq import Queue
from flask import current_app

# RQ-only keyword arguments that must not reach the job function when it runs inline
RQ_KEYS = {'job_timeout', 'timeout', 'at_front', 'depends_on', 'result_ttl', 'ttl', 'meta', 'description'}


class RQWrapper:
    def __init__(self):
        self.redis = None
        self.queue = None

    def init_app(self, app):
        try:
            self.redis = Redis.from_url(app.config.get("REDIS_URL"))
            self.queue = Queue("default", connection=self.redis)
        except Exception:
            # no redis configured/reachable: jobs run synchronously
            app.logger.exception('Redis/RQ init failed, falling back to sync execution')
            self.redis = None
            self.queue = None

    def _run_inline(self, func, *args, **kwargs):
        safe_kwargs = {k: v for k, v in kwargs.items() if k not in RQ_KEYS}
        return func(*args, **safe_kwargs)

    def enqueue(self, func, *args, **kwargs):
        if not self.queue:
            return self._run_inline(func, *args, **kwargs)
        try:
            return self.queue.enqueue(func, *args, **kwargs)
        except Exception:
            # Redis went away between init and now
            current_app.logger.exception('RQ enqueue of %s failed, running synchronously', getattr(func, '__name__', func))
            return self._run_inline(func, *args, **kwargs)


class CoreServices:
    """Proxy to the engine components built for the current app.

    ``core.pipeline``, ``core.ratings`` ... resolve against ``current_app`` so
    several app instances (tests) can coexist.
    """

    def init_app(self, app, blobs=None, records=None):
        from .services import build_services
        app.extensions["cliprate"] = build_services(app, blobs=blobs, records=records)

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            services = current_app.extensions["cliprate"]
        except (RuntimeError, KeyError) as e:
            raise AttributeError(f"cliprate services are not initialised ({name})") from e
        return getattr(services, name)


db = SQLAlchemy()
login_manager = LoginManager()
rq = RQWrapper()
core = CoreServices()
