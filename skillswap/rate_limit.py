"""
Rate limiting hooks.

Fixed-window counters keyed by policy and client address, held in process
memory. Each policy mirrors one of the limits the API has always shipped with;
`rate_limit(name)` attaches a policy to a view.
"""

import logging
import threading
import time
from collections import namedtuple
from functools import wraps

from flask import current_app, make_response, request

from skillswap.errors import RateLimited

logger = logging.getLogger(__name__)

Policy = namedtuple('Policy', 'limit window message skip_successful')

POLICIES = {
    'general': Policy(
        100, 15 * 60,
        'Demasiadas peticiones desde esta IP, por favor intenta de nuevo en 15 minutos.',
        False,
    ),
    'auth': Policy(
        5, 15 * 60,
        'Demasiados intentos de inicio de sesión. Por favor intenta de nuevo en 15 minutos.',
        True,
    ),
    'register': Policy(
        3, 60 * 60,
        'Demasiados registros desde esta IP. Por favor intenta de nuevo en 1 hora.',
        False,
    ),
    'create': Policy(
        10, 15 * 60,
        'Demasiadas creaciones en poco tiempo. Por favor espera un momento.',
        False,
    ),
    'search': Policy(
        30, 60,
        'Demasiadas búsquedas. Por favor espera un momento.',
        False,
    ),
}


class RateLimiter:

    # Expired windows are dropped at most this often
    sweep_interval = 60

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._windows = {}
        self._next_sweep = 0

    def __len__(self):
        with self._lock:
            return len(self._windows)

    def _sweep(self, now):
        expired = [key for key, (ends, _) in self._windows.items() if ends <= now]
        for key in expired:
            del self._windows[key]
        self._next_sweep = now + self.sweep_interval

    def hit(self, key, policy):
        """Count one request; returns False once the window is exhausted."""
        now = self._clock()
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)

            ends, count = self._windows.get(key, (now + policy.window, 0))
            if now >= ends:
                ends, count = now + policy.window, 0
            if count >= policy.limit:
                self._windows[key] = (ends, count)
                return False
            self._windows[key] = (ends, count + 1)
            return True

    def undo(self, key):
        with self._lock:
            if key in self._windows:
                ends, count = self._windows[key]
                self._windows[key] = (ends, max(0, count - 1))

    def reset(self):
        with self._lock:
            self._windows.clear()
            self._next_sweep = 0


limiter = RateLimiter()


def _enabled():
    return current_app.config.get('RATELIMIT_ENABLED', True)


def _count(name, policy):
    key = (name, request.remote_addr)
    if not limiter.hit(key, policy):
        logger.warning("Rate limit '%s' exceeded by %s", name, request.remote_addr)
        raise RateLimited(policy.message)
    return key


def limit_api_traffic():
    """before_request hook: every /api call counts against the general policy."""
    if not _enabled() or request.method == 'OPTIONS':
        return
    if request.path.startswith('/api/'):
        _count('general', POLICIES['general'])


def rate_limit(name):
    """Apply the named policy to a view."""
    policy = POLICIES[name]

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _enabled():
                return f(*args, **kwargs)

            key = _count(name, policy)

            # A raised ApiError leaves the hit counted
            response = make_response(f(*args, **kwargs))
            if policy.skip_successful and response.status_code < 400:
                limiter.undo(key)
            return response
        return decorated_function
    return decorator
