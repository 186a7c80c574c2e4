"""
Tests for the shopping cart.
"""

from sqlalchemy import text

from skillswap import db


def _buyer_and_skill(make_user, create_skill, precio=1000):
    seller_headers, _ = make_user(email='seller@skillswap.io', nombre='Vendedor')
    buyer_headers, _ = make_user()
    skill = create_skill(seller_headers, precio=precio)
    return seller_headers, buyer_headers, skill


class TestGetCart:

    def test_cart_created_lazily(self, client, make_user):
        headers, _ = make_user()

        first = client.get('/api/cart', headers=headers).get_json()['data']
        second = client.get('/api/cart', headers=headers).get_json()['data']

        assert first == {
            'carrito_id': first['carrito_id'],
            'items': [],
            'subtotal': 0.0,
            'total': 0.0,
            'items_count': 0,
        }
        assert second['carrito_id'] == first['carrito_id']

    def test_requires_auth(self, client):
        assert client.get('/api/cart').status_code == 401


class TestAddItem:

    def test_merge_keeps_first_price(self, app, client, make_user, create_skill):
        seller_headers, headers, skill = _buyer_and_skill(make_user, create_skill)

        one = client.post('/api/cart/items', json={'skillId': skill['id_skill'], 'cantidad': 1}, headers=headers)
        assert one.status_code == 201
        assert one.get_json()['message'] == 'Item agregado al carrito'

        # Price changes after the first add do not touch the snapshot
        client.put(f"/api/skills/{skill['id_skill']}", json={'precio': 5000}, headers=seller_headers)

        two = client.post('/api/cart/items', json={'skillId': skill['id_skill'], 'cantidad': 2}, headers=headers)
        assert two.status_code == 201
        assert two.get_json()['data']['cantidad'] == 3

        cart = client.get('/api/cart', headers=headers).get_json()['data']
        assert cart['items_count'] == 1
        item = cart['items'][0]
        assert item['cantidad'] == 3
        assert item['precio_unitario'] == 1000.0
        assert item['nombre_usuario'] == 'Vendedor García'
        assert cart['subtotal'] == 3000.0
        assert cart['total'] == cart['subtotal']

        with app.app_context():
            rows = db.session.execute(text("SELECT COUNT(*) FROM items_carrito")).scalar_one()
        assert rows == 1

    def test_default_quantity_is_one(self, client, make_user, create_skill):
        _, headers, skill = _buyer_and_skill(make_user, create_skill)

        response = client.post('/api/cart/items', json={'skillId': skill['id_skill']}, headers=headers)

        assert response.status_code == 201
        assert response.get_json()['data']['cantidad'] == 1

    def test_own_skill_rejected(self, client, make_user, create_skill):
        headers, _ = make_user()
        skill = create_skill(headers)

        response = client.post('/api/cart/items', json={'skillId': skill['id_skill']}, headers=headers)

        assert response.status_code == 400
        assert response.get_json()['message'] == 'No puedes agregar tus propios skills al carrito'

    def test_missing_or_inactive_skill(self, client, make_user, create_skill):
        seller_headers, headers, skill = _buyer_and_skill(make_user, create_skill)

        assert client.post('/api/cart/items', json={'skillId': 999}, headers=headers).status_code == 404

        client.delete(f"/api/skills/{skill['id_skill']}", headers=seller_headers)
        response = client.post('/api/cart/items', json={'skillId': skill['id_skill']}, headers=headers)
        assert response.status_code == 404

    def test_invalid_body(self, client, make_user):
        headers, _ = make_user()

        missing = client.post('/api/cart/items', json={}, headers=headers)
        zero = client.post('/api/cart/items', json={'skillId': 1, 'cantidad': 0}, headers=headers)

        assert missing.status_code == 400
        assert missing.get_json()['errors'][0]['field'] == 'skillId'
        assert zero.status_code == 400

    def test_booleans_are_not_ids_or_quantities(self, client, make_user, create_skill):
        _, headers, skill = _buyer_and_skill(make_user, create_skill)

        bool_id = client.post('/api/cart/items', json={'skillId': True, 'cantidad': True}, headers=headers)
        bool_quantity = client.post(
            '/api/cart/items', json={'skillId': skill['id_skill'], 'cantidad': True}, headers=headers,
        )

        assert bool_id.status_code == 400
        assert {error['field'] for error in bool_id.get_json()['errors']} == {'skillId', 'cantidad'}
        assert bool_quantity.status_code == 400
        assert client.get('/api/cart', headers=headers).get_json()['data']['items'] == []


class TestItemOperations:

    def _add(self, client, headers, skill, cantidad=1):
        response = client.post(
            '/api/cart/items', json={'skillId': skill['id_skill'], 'cantidad': cantidad}, headers=headers,
        )
        return response.get_json()['data']

    def test_update_quantity(self, client, make_user, create_skill):
        _, headers, skill = _buyer_and_skill(make_user, create_skill, precio=20)
        item = self._add(client, headers, skill)

        response = client.put(f"/api/cart/items/{item['id_item']}", json={'cantidad': 4}, headers=headers)

        assert response.status_code == 200
        assert response.get_json()['data']['cantidad'] == 4
        assert client.get('/api/cart', headers=headers).get_json()['data']['subtotal'] == 80.0

    def test_update_below_one(self, client, make_user, create_skill):
        _, headers, skill = _buyer_and_skill(make_user, create_skill)
        item = self._add(client, headers, skill)

        response = client.put(f"/api/cart/items/{item['id_item']}", json={'cantidad': 0}, headers=headers)

        assert response.status_code == 400
        assert response.get_json()['errors'][0]['message'] == 'La cantidad debe ser mayor a 0'

    def test_update_with_boolean(self, client, make_user, create_skill):
        _, headers, skill = _buyer_and_skill(make_user, create_skill)
        item = self._add(client, headers, skill, cantidad=2)

        response = client.put(f"/api/cart/items/{item['id_item']}", json={'cantidad': True}, headers=headers)

        assert response.status_code == 400
        assert client.get('/api/cart', headers=headers).get_json()['data']['items'][0]['cantidad'] == 2

    def test_items_of_other_carts_are_not_found(self, client, make_user, create_skill):
        seller_headers, headers, skill = _buyer_and_skill(make_user, create_skill)
        item = self._add(client, headers, skill)
        other_headers, _ = make_user(email='otro@skillswap.io')

        update = client.put(f"/api/cart/items/{item['id_item']}", json={'cantidad': 2}, headers=other_headers)
        delete = client.delete(f"/api/cart/items/{item['id_item']}", headers=other_headers)

        assert update.status_code == 404
        assert update.get_json()['message'] == 'Item no encontrado en tu carrito'
        assert delete.status_code == 404

    def test_remove_item(self, client, make_user, create_skill):
        _, headers, skill = _buyer_and_skill(make_user, create_skill)
        item = self._add(client, headers, skill)

        assert client.delete(f"/api/cart/items/{item['id_item']}", headers=headers).status_code == 200
        assert client.get('/api/cart', headers=headers).get_json()['data']['items'] == []
        assert client.delete(f"/api/cart/items/{item['id_item']}", headers=headers).status_code == 404

    def test_clear(self, client, make_user, create_skill):
        seller_headers, headers, skill = _buyer_and_skill(make_user, create_skill)
        other = create_skill(seller_headers, titulo='Otro')
        self._add(client, headers, skill)
        self._add(client, headers, other)

        response = client.delete('/api/cart', headers=headers)

        assert response.status_code == 200
        assert response.get_json()['message'] == 'Carrito vaciado exitosamente'
        assert client.get('/api/cart', headers=headers).get_json()['data']['items_count'] == 0

    def test_clear_without_cart(self, client, make_user):
        headers, _ = make_user()

        response = client.delete('/api/cart', headers=headers)

        assert response.status_code == 404
        assert response.get_json()['message'] == 'No tienes un carrito'

    def test_soft_deleted_skill_hidden_but_kept(self, app, client, make_user, create_skill):
        seller_headers, headers, skill = _buyer_and_skill(make_user, create_skill)
        self._add(client, headers, skill, cantidad=2)

        client.delete(f"/api/skills/{skill['id_skill']}", headers=seller_headers)

        cart = client.get('/api/cart', headers=headers).get_json()['data']
        assert cart['items'] == []
        assert cart['subtotal'] == 0.0

        with app.app_context():
            stored = db.session.execute(text("SELECT COUNT(*) FROM items_carrito")).scalar_one()
        assert stored == 1
