from flask import Blueprint

from skillswap.auth import current_identity, login_user, register_user, require_auth
from skillswap.rate_limit import rate_limit
from skillswap.utils import success
from skillswap.validators import LoginInput, RegisterInput, validate_body

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/register', methods=['POST'])
@rate_limit('register')
@validate_body(RegisterInput)
def register(body):
    result = register_user(body.nombre, body.apellido, str(body.email), body.password)
    return success('Usuario registrado exitosamente', result, status=201)


@auth_bp.route('/login', methods=['POST'])
@rate_limit('auth')
@validate_body(LoginInput)
def login(body):
    result = login_user(str(body.email), body.password)
    return success('Login exitoso', result)


@auth_bp.route('/verify', methods=['GET'])
@require_auth
def verify():
    identity = current_identity()
    return success('Token válido', {'userId': identity.user_id, 'email': identity.email})
