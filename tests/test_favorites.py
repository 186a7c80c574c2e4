"""
Tests for favorites: add, check, list and remove.
"""


def _setup(make_user, create_skill):
    owner_headers, _ = make_user(email='owner@skillswap.io', nombre='Owner')
    headers, _ = make_user()
    skill = create_skill(owner_headers)
    return owner_headers, headers, skill


class TestFavorites:

    def test_round_trip(self, client, make_user, create_skill):
        _, headers, skill = _setup(make_user, create_skill)
        skill_id = skill['id_skill']

        added = client.post(f'/api/favorites/{skill_id}', headers=headers)
        assert added.status_code == 201
        assert added.get_json()['data']['id_skill'] == skill_id

        check = client.get(f'/api/favorites/check/{skill_id}', headers=headers)
        assert check.get_json()['data'] == {'isFavorite': True}

        removed = client.delete(f'/api/favorites/{skill_id}', headers=headers)
        assert removed.status_code == 200

        check = client.get(f'/api/favorites/check/{skill_id}', headers=headers)
        assert check.get_json()['data'] == {'isFavorite': False}

        again = client.delete(f'/api/favorites/{skill_id}', headers=headers)
        assert again.status_code == 404
        assert again.get_json()['message'] == 'Favorito no encontrado'

    def test_duplicate_is_conflict(self, client, make_user, create_skill):
        _, headers, skill = _setup(make_user, create_skill)

        client.post(f"/api/favorites/{skill['id_skill']}", headers=headers)
        response = client.post(f"/api/favorites/{skill['id_skill']}", headers=headers)

        assert response.status_code == 409
        assert response.get_json()['success'] is False

    def test_missing_or_inactive_skill(self, client, make_user, create_skill):
        owner_headers, headers, skill = _setup(make_user, create_skill)

        assert client.post('/api/favorites/999', headers=headers).status_code == 404

        client.delete(f"/api/skills/{skill['id_skill']}", headers=owner_headers)
        assert client.post(f"/api/favorites/{skill['id_skill']}", headers=headers).status_code == 404

    def test_list_hides_inactive_skills(self, client, make_user, create_skill):
        owner_headers, headers, skill = _setup(make_user, create_skill)
        other = create_skill(owner_headers, titulo='Otro skill')
        client.post(f"/api/favorites/{skill['id_skill']}", headers=headers)
        client.post(f"/api/favorites/{other['id_skill']}", headers=headers)

        body = client.get('/api/favorites', headers=headers).get_json()
        assert body['count'] == 2
        assert body['data'][0]['id_skill'] == other['id_skill']
        assert body['data'][0]['nombre_usuario'] == 'Owner García'

        client.delete(f"/api/skills/{other['id_skill']}", headers=owner_headers)

        body = client.get('/api/favorites', headers=headers).get_json()
        assert body['count'] == 1
        assert body['data'][0]['id_skill'] == skill['id_skill']

    def test_favorites_are_per_user(self, client, make_user, create_skill):
        owner_headers, headers, skill = _setup(make_user, create_skill)
        client.post(f"/api/favorites/{skill['id_skill']}", headers=headers)

        check = client.get(f"/api/favorites/check/{skill['id_skill']}", headers=owner_headers)
        assert check.get_json()['data']['isFavorite'] is False
        assert client.delete(f"/api/favorites/{skill['id_skill']}", headers=owner_headers).status_code == 404

    def test_requires_auth(self, client):
        assert client.get('/api/favorites').status_code == 401
        assert client.post('/api/favorites/1').status_code == 401
