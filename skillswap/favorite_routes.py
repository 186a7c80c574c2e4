from flask import Blueprint
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from skillswap import db
from skillswap.auth import current_identity, require_auth
from skillswap.errors import Conflict, NotFound
from skillswap.utils import row_to_dict, skill_view, success

favorite_bp = Blueprint('favorites', __name__)


@favorite_bp.route('/', methods=['GET'])
@require_auth
def list_favorites():
    favorites_query = """
        SELECT f.id_favorito, f.creado_en,
               s.id_skill, s.titulo, s.descripcion, s.categoria, s.nivel, s.modalidad,
               s.precio, s.imagen_url, s.rating, s.total_resenas,
               u.nombre || ' ' || u.apellido AS nombre_usuario,
               u.avatar_url AS usuario_avatar
        FROM favoritos f
        INNER JOIN skills s ON f.id_skill = s.id_skill
        INNER JOIN usuarios u ON s.id_usuario = u.id_usuario
        WHERE f.id_usuario = :user_id AND s.es_activo = TRUE
        ORDER BY f.creado_en DESC, f.id_favorito DESC
    """
    rows = db.session.execute(text(favorites_query), {'user_id': current_identity().user_id}).fetchall()

    favorites = [skill_view(row) for row in rows]
    return success('Favoritos obtenidos exitosamente', favorites, count=len(favorites))


@favorite_bp.route('/<int:skill_id>', methods=['POST'])
@require_auth
def add_favorite(skill_id):
    user_id = current_identity().user_id

    # The skill has to exist and still be listed
    skill = db.session.execute(
        text("SELECT id_skill FROM skills WHERE id_skill = :skill_id AND es_activo = TRUE"),
        {'skill_id': skill_id},
    ).first()
    if not skill:
        raise NotFound('Skill no encontrado')

    already = db.session.execute(
        text("SELECT id_favorito FROM favoritos WHERE id_usuario = :user_id AND id_skill = :skill_id"),
        {'user_id': user_id, 'skill_id': skill_id},
    ).first()
    if already:
        raise Conflict('El skill ya está en favoritos')

    insert_query = text("""
        INSERT INTO favoritos (id_usuario, id_skill, creado_en)
        VALUES (:user_id, :skill_id, CURRENT_TIMESTAMP)
        RETURNING id_favorito, id_skill, creado_en
    """)
    try:
        row = db.session.execute(insert_query, {'user_id': user_id, 'skill_id': skill_id}).first()
        db.session.commit()
    except IntegrityError:
        # A concurrent add for the same pair won
        db.session.rollback()
        raise Conflict('El skill ya está en favoritos')

    return success('Skill agregado a favoritos', row_to_dict(row), status=201)


@favorite_bp.route('/<int:skill_id>', methods=['DELETE'])
@require_auth
def remove_favorite(skill_id):
    row = db.session.execute(
        text("""
            DELETE FROM favoritos
            WHERE id_usuario = :user_id AND id_skill = :skill_id
            RETURNING id_favorito
        """),
        {'user_id': current_identity().user_id, 'skill_id': skill_id},
    ).first()

    if not row:
        db.session.rollback()
        raise NotFound('Favorito no encontrado')

    db.session.commit()
    return success('Skill eliminado de favoritos')


@favorite_bp.route('/check/<int:skill_id>', methods=['GET'])
@require_auth
def check_favorite(skill_id):
    row = db.session.execute(
        text("SELECT id_favorito FROM favoritos WHERE id_usuario = :user_id AND id_skill = :skill_id"),
        {'user_id': current_identity().user_id, 'skill_id': skill_id},
    ).first()

    return success('Favorito verificado', {'isFavorite': row is not None})
