from datetime import date, datetime
from decimal import Decimal
from urllib.parse import quote_plus

from flask import jsonify


def success(message, data=None, status=200, count=None):
    """Build the `{success, message, data, count?}` envelope."""
    body = {'success': True, 'message': message}
    if data is not None:
        body['data'] = data
    if count is not None:
        body['count'] = count
    return jsonify(body), status


def to_float(value):
    if value is None:
        return 0.0
    return float(value)


def to_iso(value):
    # SQLite hands timestamps back as strings, PostgreSQL as datetime
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def row_to_dict(row):
    """Turn a result row into JSON-safe values."""
    data = {}
    for key, value in row._mapping.items():
        if isinstance(value, Decimal):
            value = float(value)
        elif isinstance(value, (datetime, date)):
            value = value.isoformat()
        data[key] = value
    return data


def public_user(row):
    """Everything about a user except the password hash."""
    return {
        'user_id': row.id_usuario,
        'email': row.email,
        'name': f"{row.nombre} {row.apellido}",
        'nombre': row.nombre,
        'apellido': row.apellido,
        'avatar_url': row.avatar_url,
        'rating': to_float(row.rating),
        'total_exchanges': row.total_intercambios or 0,
        'is_verified': bool(row.es_verificado),
        'created_at': to_iso(row.creado_en),
    }


def skill_view(row):
    data = row_to_dict(row)
    data['precio'] = to_float(data.get('precio'))
    data['rating'] = to_float(data.get('rating'))
    if 'usuario_rating' in data:
        data['usuario_rating'] = to_float(data['usuario_rating'])
    if 'es_activo' in data:
        data['es_activo'] = bool(data['es_activo'])
    return data


def default_avatar(nombre, apellido):
    name = f"{quote_plus(nombre)}+{quote_plus(apellido)}"
    return f"https://ui-avatars.com/api/?name={name}&background=random"
