from functools import wraps

from flask import Blueprint
from sqlalchemy import text

from skillswap import db
from skillswap.auth import current_identity, optional_auth, require_auth
from skillswap.errors import Forbidden, NotFound
from skillswap.rate_limit import rate_limit
from skillswap.utils import skill_view, success
from skillswap.validators import SkillFilters, SkillInput, SkillUpdateInput, validate_body, validate_query

skill_bp = Blueprint('skills', __name__)

SKILL_COLUMNS = """
    s.id_skill, s.id_usuario, s.titulo, s.descripcion, s.categoria, s.nivel,
    s.modalidad, s.duracion_horas, s.imagen_url, s.precio, s.rating,
    s.total_resenas, s.es_activo, s.creado_en, s.actualizado_en
"""

RETURNING_COLUMNS = """
    id_skill, id_usuario, titulo, descripcion, categoria, nivel, modalidad,
    duracion_horas, imagen_url, precio, rating, total_resenas, es_activo,
    creado_en, actualizado_en
"""


def _owned_skill(skill_id, action):
    """Load the skill for a write, enforcing that the caller owns it."""
    skill = db.session.execute(
        text("SELECT id_skill, id_usuario FROM skills WHERE id_skill = :skill_id"),
        {'skill_id': skill_id},
    ).first()

    if not skill:
        raise NotFound('Skill no encontrado')
    if skill.id_usuario != current_identity().user_id:
        raise Forbidden(f'No tienes permiso para {action} este skill')
    return skill


def owner_required(action):
    """
    Resolve the skill in the URL and check the caller owns it before the view
    (or its body validation) runs: 404, then 403, then 400.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            _owned_skill(kwargs['skill_id'], action)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


# List active skills, newest first
@skill_bp.route('/', methods=['GET'])
@rate_limit('search')
@optional_auth
@validate_query(SkillFilters)
def list_skills(query):
    conditions = ["s.es_activo = TRUE"]
    params = {'limit': query.limit, 'offset': query.offset}

    if query.categoria:
        conditions.append("s.categoria = :categoria")
        params['categoria'] = query.categoria
    if query.nivel:
        conditions.append("s.nivel = :nivel")
        params['nivel'] = query.nivel
    if query.modalidad:
        conditions.append("s.modalidad = :modalidad")
        params['modalidad'] = query.modalidad
    if query.min_precio is not None:
        conditions.append("s.precio >= :min_precio")
        params['min_precio'] = query.min_precio
    if query.max_precio is not None:
        conditions.append("s.precio <= :max_precio")
        params['max_precio'] = query.max_precio

    list_query = f"""
        SELECT {SKILL_COLUMNS},
               u.nombre || ' ' || u.apellido AS nombre_usuario,
               u.avatar_url AS usuario_avatar
        FROM skills s
        INNER JOIN usuarios u ON s.id_usuario = u.id_usuario
        WHERE {' AND '.join(conditions)}
        ORDER BY s.creado_en DESC, s.id_skill DESC
        LIMIT :limit OFFSET :offset
    """
    rows = db.session.execute(text(list_query), params).fetchall()

    skills = [skill_view(row) for row in rows]
    return success('Skills obtenidos exitosamente', skills, count=len(skills))


@skill_bp.route('/<int:skill_id>', methods=['GET'])
@optional_auth
def get_skill(skill_id):
    skill_query = f"""
        SELECT {SKILL_COLUMNS},
               u.nombre || ' ' || u.apellido AS nombre_usuario,
               u.avatar_url AS usuario_avatar,
               u.rating AS usuario_rating
        FROM skills s
        INNER JOIN usuarios u ON s.id_usuario = u.id_usuario
        WHERE s.id_skill = :skill_id AND s.es_activo = TRUE
    """
    row = db.session.execute(text(skill_query), {'skill_id': skill_id}).first()

    if not row:
        raise NotFound('Skill no encontrado')

    return success('Skill obtenido exitosamente', skill_view(row))


@skill_bp.route('/', methods=['POST'])
@require_auth
@rate_limit('create')
@validate_body(SkillInput)
def create_skill(body):
    insert_query = f"""
        INSERT INTO skills (id_usuario, titulo, descripcion, categoria, nivel, modalidad,
                            duracion_horas, imagen_url, precio, es_activo, creado_en, actualizado_en)
        VALUES (:id_usuario, :titulo, :descripcion, :categoria, :nivel, :modalidad,
                :duracion_horas, :imagen_url, :precio, TRUE, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
        RETURNING {RETURNING_COLUMNS}
    """
    row = db.session.execute(
        text(insert_query),
        {'id_usuario': current_identity().user_id, **body.model_dump()},
    ).first()
    db.session.commit()

    return success('Skill creado exitosamente', skill_view(row), status=201)


@skill_bp.route('/<int:skill_id>', methods=['PUT'])
@require_auth
@owner_required('editar')
@validate_body(SkillUpdateInput)
def update_skill(skill_id, body):
    # Only the fields present in the request are written
    changes = body.model_dump(exclude_unset=True)
    assignments = [f"{column} = :{column}" for column in changes]
    assignments.append("actualizado_en = CURRENT_TIMESTAMP")

    update_query = f"""
        UPDATE skills
        SET {', '.join(assignments)}
        WHERE id_skill = :skill_id
        RETURNING {RETURNING_COLUMNS}
    """
    row = db.session.execute(text(update_query), {**changes, 'skill_id': skill_id}).first()
    db.session.commit()

    return success('Skill actualizado exitosamente', skill_view(row))


@skill_bp.route('/<int:skill_id>', methods=['DELETE'])
@require_auth
@owner_required('eliminar')
def delete_skill(skill_id):
    # Soft delete: favorites and cart items keep pointing at the row
    db.session.execute(
        text("""
            UPDATE skills
            SET es_activo = FALSE, actualizado_en = CURRENT_TIMESTAMP
            WHERE id_skill = :skill_id
        """),
        {'skill_id': skill_id},
    )
    db.session.commit()

    return success('Skill eliminado exitosamente')
