from chalice.test import Client

from app import app
from test.utils.fixtures import PROJECT_DIR


def test_index():
    with Client(app, project_dir=PROJECT_DIR) as client:
        response = client.http.get('/health-check', headers={'Authorization': 'health-check'})
        assert response.status_code == 200
        assert response.json_body == {'health': 'check'}
