from flask import Blueprint
from sqlalchemy import text

from skillswap import db
from skillswap.auth import current_identity, require_auth
from skillswap.errors import NotFound
from skillswap.utils import public_user, skill_view, success
from skillswap.validators import ProfileInput, validate_body

profile_bp = Blueprint('profile', __name__)

USER_COLUMNS = """
    id_usuario, nombre, apellido, email, avatar_url,
    rating, total_intercambios, es_verificado, creado_en
"""


@profile_bp.route('/profile', methods=['GET'])
@require_auth
def view_profile():
    user = db.session.execute(
        text(f"SELECT {USER_COLUMNS} FROM usuarios WHERE id_usuario = :user_id"),
        {'user_id': current_identity().user_id},
    ).first()

    if not user:
        raise NotFound('Usuario no encontrado')

    return success('Perfil obtenido exitosamente', public_user(user))


# The owner's own listings, inactive ones included
@profile_bp.route('/my-skills', methods=['GET'])
@require_auth
def my_skills():
    skills_query = """
        SELECT id_skill, id_usuario, titulo, descripcion, categoria, nivel, modalidad,
               duracion_horas, imagen_url, precio, rating, total_resenas, es_activo,
               creado_en, actualizado_en
        FROM skills
        WHERE id_usuario = :user_id
        ORDER BY creado_en DESC, id_skill DESC
    """
    rows = db.session.execute(text(skills_query), {'user_id': current_identity().user_id}).fetchall()

    skills = [skill_view(row) for row in rows]
    return success('Skills obtenidos exitosamente', skills, count=len(skills))


@profile_bp.route('/profile', methods=['PUT'])
@require_auth
@validate_body(ProfileInput)
def update_profile(body):
    # Fields left out (or sent as null) keep their current value
    update_query = text(f"""
        UPDATE usuarios
        SET nombre = COALESCE(:nombre, nombre),
            apellido = COALESCE(:apellido, apellido),
            avatar_url = COALESCE(:avatar_url, avatar_url),
            actualizado_en = CURRENT_TIMESTAMP
        WHERE id_usuario = :user_id
        RETURNING {USER_COLUMNS}
    """)
    user = db.session.execute(update_query, {
        'nombre': body.nombre,
        'apellido': body.apellido,
        'avatar_url': body.avatar_url,
        'user_id': current_identity().user_id,
    }).first()

    if not user:
        db.session.rollback()
        raise NotFound('Usuario no encontrado')

    db.session.commit()
    return success('Perfil actualizado exitosamente', public_user(user))
