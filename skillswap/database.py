import logging
import threading
from contextlib import contextmanager

from flask import current_app

from skillswap import db
from skillswap.errors import ServiceUnavailable

logger = logging.getLogger(__name__)


def _cancel(connection):
    """Abort the statement running on `connection`; callable from another thread."""
    raw = connection.connection.dbapi_connection
    if hasattr(raw, 'cancel'):        # psycopg2
        raw.cancel()
    elif hasattr(raw, 'interrupt'):   # sqlite3
        raw.interrupt()


@contextmanager
def checkout(timeout=None):
    """
    Take a dedicated connection from the pool and run the block in one transaction.

    Commits when the block finishes, rolls back when it raises, and always gives
    the connection back. If the block keeps the connection longer than the
    watchdog allows, the running statement is cancelled and the block fails
    with ServiceUnavailable.
    """
    if timeout is None:
        timeout = current_app.config.get('DB_CHECKOUT_WATCHDOG_SECONDS', 5)

    connection = db.engine.connect()
    expired = threading.Event()

    def watchdog():
        expired.set()
        logger.error(
            "Database connection checked out for more than %.1f seconds, forcing release", timeout
        )
        _cancel(connection)

    timer = threading.Timer(timeout, watchdog)
    timer.daemon = True
    timer.start()
    try:
        with connection.begin():
            yield connection
            if expired.is_set():
                raise ServiceUnavailable()
    finally:
        timer.cancel()
        connection.close()
