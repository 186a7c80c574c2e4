import logging
from collections import namedtuple
from functools import wraps

from flask import g, request
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import ExpiredSignatureError, PyJWTError
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from skillswap import bcrypt, db
from skillswap.errors import Conflict, Unauthenticated
from skillswap.utils import default_avatar, public_user
from skillswap.validators import BCRYPT_MAX_BYTES

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = 'Credenciales inválidas'

# Who is calling; lives on flask.g for the duration of one request
Identity = namedtuple('Identity', 'user_id email')

_dummy_hash = None


def hash_password(password):
    return bcrypt.generate_password_hash(password).decode('utf-8')


def check_password(password_hash, password):
    return bcrypt.check_password_hash(password_hash, password)


def _timing_guard_hash():
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_password('skillswap-timing-guard')
    return _dummy_hash


def generate_token(user_id, email):
    """
    Generate a signed token for the given user.
    Lifetime comes from JWT_ACCESS_TOKEN_EXPIRES (24 hours).
    """
    return create_access_token(identity=str(user_id), additional_claims={'email': email})


def verify_token(token):
    """
    Decode and verify the token. No database read involved.
    """
    try:
        claims = decode_token(token)
        return Identity(int(claims['sub']), claims['email'])
    except ExpiredSignatureError:
        raise Unauthenticated('Tu sesión ha expirado')
    except (PyJWTError, JWTExtendedException, KeyError, ValueError, TypeError):
        raise Unauthenticated('Token inválido')


def _bearer_token():
    header = request.headers.get('Authorization')
    if not header:
        return None

    scheme, _, token = header.partition(' ')
    if scheme != 'Bearer' or not token.strip():
        raise Unauthenticated('Formato de token inválido')
    return token.strip()


def require_auth(f):
    """
    Decorator to protect endpoints with authentication.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            raise Unauthenticated('Token no proporcionado')

        g.identity = verify_token(token)
        return f(*args, **kwargs)
    return decorated_function


def optional_auth(f):
    """
    Like require_auth, but a request without a token goes through anonymously.
    A token that is present still has to be valid.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        g.identity = verify_token(token) if token is not None else None
        return f(*args, **kwargs)
    return decorated_function


def current_identity():
    return g.get('identity')


def register_user(nombre, apellido, email, password):
    """Create the account and return `{token, user}`."""
    email = email.strip().lower()

    # Check if the email is already taken
    existing = db.session.execute(
        text("SELECT id_usuario FROM usuarios WHERE email = :email"),
        {'email': email},
    ).first()
    if existing:
        raise Conflict('El email ya está registrado')

    insert_query = text("""
        INSERT INTO usuarios (nombre, apellido, email, password, avatar_url,
                              es_verificado, creado_en, actualizado_en)
        VALUES (:nombre, :apellido, :email, :password, :avatar_url,
                FALSE, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
        RETURNING id_usuario, nombre, apellido, email, avatar_url,
                  rating, total_intercambios, es_verificado, creado_en
    """)
    try:
        user = db.session.execute(insert_query, {
            'nombre': nombre,
            'apellido': apellido,
            'email': email,
            'password': hash_password(password),
            'avatar_url': default_avatar(nombre, apellido),
        }).first()
        db.session.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration with the same email
        db.session.rollback()
        raise Conflict('El email ya está registrado')

    logger.info("Registered user %s", user.id_usuario)
    return {
        'token': generate_token(user.id_usuario, user.email),
        'user': public_user(user),
    }


def login_user(email, password):
    """Check the credentials and return `{token, user}`."""
    email = email.strip().lower()
    # Longer passwords can never have been registered
    if len(password.encode('utf-8')) > BCRYPT_MAX_BYTES:
        raise Unauthenticated(INVALID_CREDENTIALS)

    user_query = text("""
        SELECT id_usuario, nombre, apellido, email, password, avatar_url,
               rating, total_intercambios, es_verificado, creado_en
        FROM usuarios
        WHERE email = :email
    """)
    user = db.session.execute(user_query, {'email': email}).first()

    if user is None:
        # Same bcrypt cost as a real check, so timing does not reveal the account
        check_password(_timing_guard_hash(), password)
        raise Unauthenticated(INVALID_CREDENTIALS)

    if not check_password(user.password, password):
        raise Unauthenticated(INVALID_CREDENTIALS)

    return {
        'token': generate_token(user.id_usuario, user.email),
        'user': public_user(user),
    }
