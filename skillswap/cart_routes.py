from decimal import Decimal

from flask import Blueprint
from sqlalchemy import text

from skillswap import db
from skillswap.auth import current_identity, require_auth
from skillswap.database import checkout
from skillswap.errors import BadRequest, NotFound
from skillswap.utils import row_to_dict, success, to_float
from skillswap.validators import CartItemInput, CartQuantityInput, validate_body

cart_bp = Blueprint('cart', __name__)

ITEM_COLUMNS = "id_item, id_carrito, id_skill, cantidad, precio_unitario, creado_en"


def _find_cart(executor, user_id):
    row = executor.execute(
        text("SELECT id_carrito FROM carrito WHERE id_usuario = :user_id"),
        {'user_id': user_id},
    ).first()
    return row.id_carrito if row else None


def _ensure_cart(executor, user_id):
    """Cart id for the user, creating the cart on first use."""
    cart_id = _find_cart(executor, user_id)
    if cart_id is not None:
        return cart_id

    # ON CONFLICT covers two first requests racing to create the cart
    executor.execute(
        text("""
            INSERT INTO carrito (id_usuario, creado_en)
            VALUES (:user_id, CURRENT_TIMESTAMP)
            ON CONFLICT (id_usuario) DO NOTHING
        """),
        {'user_id': user_id},
    )
    return _find_cart(executor, user_id)


def _item_view(row):
    item = row_to_dict(row)
    item['precio_unitario'] = to_float(item['precio_unitario'])
    return item


@cart_bp.route('/', methods=['GET'])
@require_auth
def get_cart():
    cart_id = _ensure_cart(db.session, current_identity().user_id)
    db.session.commit()

    # Items whose skill was soft-deleted stay stored but are not shown
    items_query = text("""
        SELECT ic.id_item, ic.cantidad, ic.precio_unitario,
               s.id_skill, s.titulo, s.descripcion, s.categoria, s.imagen_url, s.duracion_horas,
               u.nombre || ' ' || u.apellido AS nombre_usuario,
               u.avatar_url AS usuario_avatar
        FROM items_carrito ic
        INNER JOIN skills s ON ic.id_skill = s.id_skill
        INNER JOIN usuarios u ON s.id_usuario = u.id_usuario
        WHERE ic.id_carrito = :cart_id AND s.es_activo = TRUE
        ORDER BY ic.creado_en DESC, ic.id_item DESC
    """)
    rows = db.session.execute(items_query, {'cart_id': cart_id}).fetchall()

    subtotal = sum(
        (Decimal(str(row.precio_unitario)) * row.cantidad for row in rows), Decimal('0')
    )
    items = [_item_view(row) for row in rows]

    return success('Carrito obtenido exitosamente', {
        'carrito_id': cart_id,
        'items': items,
        'subtotal': float(subtotal),
        # Commission is added by the client; the server total is the subtotal
        'total': float(subtotal),
        'items_count': len(items),
    })


@cart_bp.route('/items', methods=['POST'])
@require_auth
@validate_body(CartItemInput)
def add_item(body):
    user_id = current_identity().user_id

    with checkout() as connection:
        skill = connection.execute(
            text("""
                SELECT id_skill, precio, id_usuario
                FROM skills
                WHERE id_skill = :skill_id AND es_activo = TRUE
            """),
            {'skill_id': body.skillId},
        ).first()

        if not skill:
            raise NotFound('Skill no encontrado')
        if skill.id_usuario == user_id:
            raise BadRequest('No puedes agregar tus propios skills al carrito')

        cart_id = _ensure_cart(connection, user_id)

        # Adding a skill already in the cart bumps its quantity and keeps the
        # original price snapshot
        item = connection.execute(
            text(f"""
                INSERT INTO items_carrito (id_carrito, id_skill, cantidad, precio_unitario, creado_en)
                VALUES (:cart_id, :skill_id, :cantidad, :precio, CURRENT_TIMESTAMP)
                ON CONFLICT (id_carrito, id_skill)
                DO UPDATE SET cantidad = items_carrito.cantidad + excluded.cantidad
                RETURNING {ITEM_COLUMNS}
            """),
            {
                'cart_id': cart_id,
                'skill_id': skill.id_skill,
                'cantidad': body.cantidad,
                'precio': skill.precio,
            },
        ).first()

    return success('Item agregado al carrito', _item_view(item), status=201)


@cart_bp.route('/items/<int:item_id>', methods=['PUT'])
@require_auth
@validate_body(CartQuantityInput)
def update_item(item_id, body):
    update_query = text(f"""
        UPDATE items_carrito
        SET cantidad = :cantidad
        WHERE id_item = :item_id
          AND id_carrito IN (SELECT id_carrito FROM carrito WHERE id_usuario = :user_id)
        RETURNING {ITEM_COLUMNS}
    """)
    item = db.session.execute(update_query, {
        'cantidad': body.cantidad,
        'item_id': item_id,
        'user_id': current_identity().user_id,
    }).first()

    if not item:
        db.session.rollback()
        raise NotFound('Item no encontrado en tu carrito')

    db.session.commit()
    return success('Item actualizado', _item_view(item))


@cart_bp.route('/items/<int:item_id>', methods=['DELETE'])
@require_auth
def remove_item(item_id):
    delete_query = text("""
        DELETE FROM items_carrito
        WHERE id_item = :item_id
          AND id_carrito IN (SELECT id_carrito FROM carrito WHERE id_usuario = :user_id)
        RETURNING id_item
    """)
    item = db.session.execute(delete_query, {
        'item_id': item_id,
        'user_id': current_identity().user_id,
    }).first()

    if not item:
        db.session.rollback()
        raise NotFound('Item no encontrado en tu carrito')

    db.session.commit()
    return success('Item eliminado del carrito')


@cart_bp.route('/', methods=['DELETE'])
@require_auth
def clear_cart():
    cart_id = _find_cart(db.session, current_identity().user_id)
    if cart_id is None:
        raise NotFound('No tienes un carrito')

    db.session.execute(
        text("DELETE FROM items_carrito WHERE id_carrito = :cart_id"),
        {'cart_id': cart_id},
    )
    db.session.commit()
    return success('Carrito vaciado exitosamente')
