"""Error types raised by the handlers and the single place that maps them to HTTP."""

import logging
import re
import traceback

from flask import current_app, jsonify, request
from sqlalchemy.exc import DBAPIError, DataError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = '23505'
FOREIGN_KEY_VIOLATION = '23503'
NOT_NULL_VIOLATION = '23502'
QUERY_CANCELED = '57014'


class ApiError(Exception):
    status_code = 500
    default_message = 'Error del servidor'

    def __init__(self, message=None, errors=None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationFailed(ApiError):
    status_code = 400
    default_message = 'Errores de validación'


class BadRequest(ApiError):
    status_code = 400
    default_message = 'Solicitud inválida'


class Unauthenticated(ApiError):
    status_code = 401
    default_message = 'Token no proporcionado'


class Forbidden(ApiError):
    status_code = 403
    default_message = 'No tienes permiso para realizar esta acción'


class NotFound(ApiError):
    status_code = 404
    default_message = 'Recurso no encontrado'


class Conflict(ApiError):
    status_code = 409
    default_message = 'El recurso ya existe'


class RateLimited(ApiError):
    status_code = 429
    default_message = 'Demasiadas peticiones, por favor intenta de nuevo más tarde.'


class ServiceUnavailable(ApiError):
    """Database overloaded or timed out. The client only sees a generic 500."""
    status_code = 503
    default_message = 'Servicio no disponible temporalmente'


def sqlstate_of(exc):
    """SQLSTATE of a driver error, or None when the driver does not expose one."""
    orig = getattr(exc, 'orig', exc)
    return getattr(orig, 'pgcode', None) or getattr(orig, 'sqlstate', None)


def _unique_field(exc):
    text = str(getattr(exc, 'orig', exc))
    # PostgreSQL: Key (email)=(ana@x.io) already exists.
    match = re.search(r'Key \((\w+)\)=', text)
    if match:
        return match.group(1)
    # SQLite: UNIQUE constraint failed: usuarios.email
    match = re.search(r'UNIQUE constraint failed: \w+\.(\w+)', text)
    if match:
        return match.group(1)
    return 'valor'


def _not_null_field(exc):
    orig = getattr(exc, 'orig', exc)
    diag = getattr(orig, 'diag', None)
    column = getattr(diag, 'column_name', None)
    if column:
        return column
    match = re.search(r'NOT NULL constraint failed: \w+\.(\w+)', str(orig))
    return match.group(1) if match else 'campo requerido'


def classify_integrity_error(exc):
    """Translate a constraint violation into the matching ApiError."""
    state = sqlstate_of(exc)
    text = str(getattr(exc, 'orig', exc))

    if state == UNIQUE_VIOLATION or 'UNIQUE constraint failed' in text:
        return Conflict(f'El {_unique_field(exc)} ya está registrado')
    if state == FOREIGN_KEY_VIOLATION or 'FOREIGN KEY constraint failed' in text:
        return BadRequest('Referencia a un recurso que no existe')
    if state == NOT_NULL_VIOLATION or 'NOT NULL constraint failed' in text:
        return BadRequest(f'El campo {_not_null_field(exc)} es requerido')
    if 'CHECK constraint failed' in text or state == '23514':
        return BadRequest('Valor fuera del rango permitido')
    return ApiError()


def _error_response(error, original=None):
    status = error.status_code
    # 503-class database failures are reported to the client as a plain 500
    if isinstance(error, ServiceUnavailable):
        status = 500
        body = {'success': False, 'message': ApiError.default_message}
    else:
        body = {'success': False, 'message': error.message}
        if error.errors:
            body['errors'] = error.errors

    if original is not None and not current_app.config.get('PRODUCTION', True):
        body['stack'] = ''.join(
            traceback.format_exception(type(original), original, original.__traceback__)
        )
    return jsonify(body), status


def _rollback():
    from skillswap import db

    try:
        db.session.rollback()
    except DBAPIError:
        logger.exception("Rollback failed while shaping an error")


def register_error_handlers(app):
    """Install the error shaper on the application."""

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        if isinstance(error, ServiceUnavailable):
            logger.error("%s %s -> 503: %s", request.method, request.path, error.message)
            return _error_response(error, error)
        logger.info("%s %s -> %s: %s", request.method, request.path, error.status_code, error.message)
        return _error_response(error)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        _rollback()
        shaped = classify_integrity_error(error)
        if shaped.status_code >= 500:
            logger.exception("Unclassified integrity error on %s %s", request.method, request.path)
            return _error_response(shaped, error)
        logger.info("%s %s -> %s: %s", request.method, request.path, shaped.status_code, shaped.message)
        return _error_response(shaped)

    @app.errorhandler(DataError)
    def handle_data_error(error):
        # Value too long or out of range for its column
        _rollback()
        logger.warning("Rejected value on %s %s: %s", request.method, request.path, error.orig)
        return _error_response(BadRequest('Valor fuera del rango permitido'))

    @app.errorhandler(OperationalError)
    @app.errorhandler(PoolTimeoutError)
    def handle_database_unavailable(error):
        _rollback()
        if sqlstate_of(error) == QUERY_CANCELED:
            logger.error("Statement timeout on %s %s", request.method, request.path)
        else:
            logger.exception("Database unavailable on %s %s", request.method, request.path)
        return _error_response(ServiceUnavailable(), error)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        if error.code == 404:
            message = f'Ruta no encontrada: {request.path}'
        elif error.code == 405:
            message = 'Método no permitido'
        elif error.code == 400:
            message = 'JSON inválido en el cuerpo de la solicitud'
        else:
            message = error.description
        return jsonify({'success': False, 'message': message}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        _rollback()
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return _error_response(ApiError(), error)
