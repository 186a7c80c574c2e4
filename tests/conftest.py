import pytest

from skillswap import create_app, db
from skillswap.rate_limit import limiter

DEFAULT_PASSWORD = 'secret123'


@pytest.fixture
def app():
    app = create_app('skillswap.config.TestingConfig')
    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def register(client):
    """Register an account; returns the raw response."""
    def _register(email='ana@skillswap.io', password=DEFAULT_PASSWORD, nombre='Ana', apellido='García'):
        return client.post('/api/auth/register', json={
            'nombre': nombre,
            'apellido': apellido,
            'email': email,
            'password': password,
        })
    return _register


@pytest.fixture
def make_user(register):
    """Register an account; returns (headers, user) ready for authenticated calls."""
    def _make_user(email='ana@skillswap.io', nombre='Ana', apellido='García'):
        response = register(email=email, nombre=nombre, apellido=apellido)
        assert response.status_code == 201, response.get_json()
        data = response.get_json()['data']
        return {'Authorization': f"Bearer {data['token']}"}, data['user']
    return _make_user


@pytest.fixture
def create_skill(client):
    """Publish a skill as the given user; returns the created skill."""
    def _create_skill(headers, **overrides):
        payload = {
            'titulo': 'Guitarra',
            'descripcion': 'Clases de guitarra para principiantes',
            'categoria': 'Música',
            'nivel': 'Principiante',
            'modalidad': 'Online',
            'precio': 25,
            'duracion_horas': 2,
        }
        payload.update(overrides)
        response = client.post('/api/skills', json=payload, headers=headers)
        assert response.status_code == 201, response.get_json()
        return response.get_json()['data']
    return _create_skill
