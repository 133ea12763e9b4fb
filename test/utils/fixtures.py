import os
from decimal import Decimal
from unittest.mock import patch

import jwt
import pytest
from chalice.test import Client

from app import app
from chalicelib.constants.constants import ROLE_USER, ROLE_ADMIN
from chalicelib.menu_items import MenuItem
from chalicelib.users import User
from chalicelib.utils import db
from chalicelib.utils.logger import log_message
from test.utils.fake_table import FakeTable

PROJECT_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

id_admin = '13303309-d941-486f-b600-3e90929ac50f'
id_user = 'e5b01491-e538-4be3-8d3c-a57db7fc43c1'


class MemoryStorage:
    """Storage port for StateStore keeping everything in a dict"""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def remove(self, key):
        self.data.pop(key, None)


def fake_claims(token):
    if token.startswith('invalid'):
        raise jwt.InvalidTokenError('Signature verification failed')
    return {'sub': token, 'email': f'{token}@example.com'}


@pytest.fixture
def fake_db() -> FakeTable:
    previous = db._DB
    db._DB = FakeTable()
    yield db._DB
    db._DB = previous


@pytest.fixture
def mock_auth():
    with patch('chalicelib.utils.auth.decode_token', side_effect=fake_claims) as decode:
        yield decode


@pytest.fixture
def chalice_client(fake_db, mock_auth) -> Client:
    log_message(f'chalice_client project_dir = {PROJECT_DIR}')
    with Client(app, stage_name='dev', project_dir=PROJECT_DIR) as client:
        yield client


@pytest.fixture
def mock_ses():
    with patch('chalicelib.utils.notifications.ses_client') as ses_client:
        ses_client.send_email.return_value = {'MessageId': 'test-message-id'}
        yield ses_client


def create_test_user(user_id=id_user, role=ROLE_USER, **kwargs) -> User:
    user = User(id_=user_id, email=kwargs.pop('email', f'{user_id}@example.com'),
                name=kwargs.pop('name', 'Test User'), role=role, points=kwargs.pop('points', Decimal('0')), **kwargs)
    user._create_db_record()
    return user


def create_test_admin(user_id=id_admin) -> User:
    return create_test_user(user_id, role=ROLE_ADMIN, name='Test Admin')


def create_test_menu_item(name='Momo', price='12.99', category='Dumplings', **kwargs) -> MenuItem:
    menu_item = MenuItem(id_=kwargs.pop('id_', f'item-{name.lower().replace(" ", "-")}'), name=name,
                         price=Decimal(price), category=category,
                         description=kwargs.pop('description', f'{name} from the kitchen'), **kwargs)
    menu_item._create_db_record()
    return menu_item
