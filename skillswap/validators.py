"""
Input models for every endpoint and the decorators that apply them.

A failed rule never reaches the handler: the decorator raises ValidationFailed
and the error shaper answers 400 with `errors: [{field, message}]`.
Unknown fields are dropped.
"""

from functools import wraps
from typing import Annotated, ClassVar, Literal, Optional

from flask import request
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StrictFloat,
    StrictInt,
    StringConstraints,
    ValidationError,
    field_validator,
)
from pydantic_core import PydanticCustomError

from skillswap.errors import BadRequest, ValidationFailed

MAX_PAGE_SIZE = 50
BCRYPT_MAX_BYTES = 72
MAX_PRICE = 1_000_000


def bounded_text(max_length):
    """Trimmed, non-empty text no longer than the column that stores it."""
    return Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=max_length)]


Text = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Name = bounded_text(100)
Title = bounded_text(200)
Category = bounded_text(100)
Nivel = Literal['Principiante', 'Intermedio', 'Avanzado']
Modalidad = Literal['Online', 'Presencial', 'Híbrido']

# Error type whose message is already user-facing
CUSTOM = 'campo_invalido'

TOO_LONG = 'string_too_long'
TOO_BIG = 'less_than_equal'


def _reject_null(value):
    if value is None:
        raise PydanticCustomError(CUSTOM, 'El campo no puede ser nulo')
    return value


class Schema(BaseModel):
    model_config = ConfigDict(extra='ignore')

    # Keyed by field, or by (field, error type) for a more specific message
    messages: ClassVar[dict] = {}


class RegisterInput(Schema):
    nombre: Name
    apellido: Name
    email: EmailStr
    password: str = Field(min_length=6)

    messages = {
        'nombre': 'El nombre es requerido',
        ('nombre', TOO_LONG): 'El nombre no puede exceder 100 caracteres',
        'apellido': 'El apellido es requerido',
        ('apellido', TOO_LONG): 'El apellido no puede exceder 100 caracteres',
        'email': 'Email inválido',
        'password': 'La contraseña debe tener al menos 6 caracteres',
    }

    @field_validator('password')
    @classmethod
    def fits_bcrypt(cls, value):
        if len(value.encode('utf-8')) > BCRYPT_MAX_BYTES:
            raise PydanticCustomError(CUSTOM, 'La contraseña no puede exceder 72 bytes')
        return value


class LoginInput(Schema):
    email: EmailStr
    password: str = Field(min_length=1)

    messages = {
        'email': 'Email inválido',
        'password': 'La contraseña es requerida',
    }


class SkillInput(Schema):
    titulo: Title
    descripcion: Text
    categoria: Category
    nivel: Nivel
    modalidad: Modalidad
    # JSON numbers only; true/false are not prices or durations
    precio: StrictFloat = Field(ge=0, le=MAX_PRICE, allow_inf_nan=False)
    duracion_horas: Optional[StrictInt] = Field(default=None, ge=1)
    imagen_url: Optional[str] = None

    messages = {
        'titulo': 'El título es requerido',
        ('titulo', TOO_LONG): 'El título no puede exceder 200 caracteres',
        'descripcion': 'La descripción es requerida',
        'categoria': 'La categoría es requerida',
        ('categoria', TOO_LONG): 'La categoría no puede exceder 100 caracteres',
        'nivel': 'Nivel inválido',
        'modalidad': 'Modalidad inválida',
        'precio': 'El precio debe ser un número positivo',
        ('precio', TOO_BIG): 'El precio no puede superar 1.000.000',
        'duracion_horas': 'La duración debe ser un número entero positivo',
        'imagen_url': 'La URL de la imagen no es válida',
    }


class SkillUpdateInput(Schema):
    """Every field optional; only the ones sent are written."""

    titulo: Optional[Title] = None
    descripcion: Optional[Text] = None
    categoria: Optional[Category] = None
    nivel: Optional[Nivel] = None
    modalidad: Optional[Modalidad] = None
    precio: Optional[StrictFloat] = Field(default=None, ge=0, le=MAX_PRICE, allow_inf_nan=False)
    duracion_horas: Optional[StrictInt] = Field(default=None, ge=1)
    imagen_url: Optional[str] = None

    messages = SkillInput.messages

    @field_validator(
        'titulo', 'descripcion', 'categoria', 'nivel', 'modalidad', 'precio', mode='before'
    )
    @classmethod
    def not_null(cls, value):
        return _reject_null(value)


class SkillFilters(Schema):
    categoria: Optional[str] = None
    nivel: Optional[Nivel] = None
    modalidad: Optional[Modalidad] = None
    min_precio: Optional[float] = Field(
        default=None, ge=0, validation_alias=AliasChoices('minPrecio', 'minPrice')
    )
    max_precio: Optional[float] = Field(
        default=None, ge=0, validation_alias=AliasChoices('maxPrecio', 'maxPrice')
    )
    limit: int = Field(default=MAX_PAGE_SIZE, ge=1)
    offset: int = Field(default=0, ge=0)

    messages = {
        'nivel': 'El nivel no es válido',
        'modalidad': 'La modalidad no es válida',
        'minPrecio': 'El precio mínimo debe ser un número positivo',
        'minPrice': 'El precio mínimo debe ser un número positivo',
        'maxPrecio': 'El precio máximo debe ser un número positivo',
        'maxPrice': 'El precio máximo debe ser un número positivo',
        'limit': 'El límite debe ser un entero mayor a 0',
        'offset': 'El offset debe ser un número positivo',
    }

    @field_validator('*', mode='before')
    @classmethod
    def blank_is_missing(cls, value, info):
        if isinstance(value, str) and not value.strip():
            value = None
        if value is None and info.field_name == 'limit':
            return MAX_PAGE_SIZE
        if value is None and info.field_name == 'offset':
            return 0
        return value

    @field_validator('limit')
    @classmethod
    def clamp_limit(cls, value):
        return min(value, MAX_PAGE_SIZE)

    @field_validator('max_precio')
    @classmethod
    def above_min(cls, value, info):
        minimum = info.data.get('min_precio')
        if value is not None and minimum is not None and value < minimum:
            raise PydanticCustomError(CUSTOM, 'El precio máximo debe ser mayor al precio mínimo')
        return value


class CartItemInput(Schema):
    skillId: StrictInt = Field(ge=1)
    cantidad: StrictInt = Field(default=1, ge=1)

    messages = {
        'skillId': 'ID de skill inválido',
        'cantidad': 'Cantidad inválida',
    }


class CartQuantityInput(Schema):
    cantidad: StrictInt = Field(ge=1)

    messages = {
        'cantidad': 'La cantidad debe ser mayor a 0',
    }


class ProfileInput(Schema):
    nombre: Optional[Name] = None
    apellido: Optional[Name] = None
    avatar_url: Optional[str] = None

    messages = {
        'nombre': 'El nombre no puede estar vacío',
        'apellido': 'El apellido no puede estar vacío',
        ('nombre', TOO_LONG): 'El nombre no puede exceder 100 caracteres',
        ('apellido', TOO_LONG): 'El apellido no puede exceder 100 caracteres',
        'avatar_url': 'La URL del avatar no es válida',
    }


def format_errors(model, exc):
    errors = []
    for error in exc.errors():
        field = '.'.join(str(part) for part in error['loc']) or None
        if error['type'] == CUSTOM:
            message = error['msg']
        else:
            message = model.messages.get(
                (field, error['type']), model.messages.get(field, error['msg'])
            )
        # `msg` is kept for clients written against the older error shape
        errors.append({'field': field, 'message': message, 'msg': message})
    return errors


def parse(model, data):
    """Validate `data` against `model` or raise ValidationFailed."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailed(errors=format_errors(model, exc)) from exc


def _json_body():
    if not request.get_data():
        return {}
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise BadRequest('JSON inválido en el cuerpo de la solicitud')
    return payload


def validate_body(model):
    """Parse the JSON body into `model` and pass it to the view as `body`."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            kwargs['body'] = parse(model, _json_body())
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def validate_query(model):
    """Parse the query string into `model` and pass it to the view as `query`."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            kwargs['query'] = parse(model, request.args.to_dict())
            return f(*args, **kwargs)
        return decorated_function
    return decorator
