from io import BytesIO
from unittest.mock import patch

import pytest
from PIL import Image
from requests_toolbelt.multipart.encoder import MultipartEncoder

from chalicelib import images
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import MAIN_IMAGE_NAME, THUMB_IMAGE_NAME
from chalicelib.constants.status_codes import http200, http400, http403
from chalicelib.utils import exceptions
from test.utils.request_utils import make_request, TEST_CLIENT_ID

from test.utils.fixtures import chalice_client, fake_db, mock_auth, create_test_admin, create_test_user, \
    create_test_menu_item, id_admin, id_user


def make_image_bytes(size=(1600, 800), mode='RGBA'):
    buffer = BytesIO()
    Image.new(mode, size, color=(200, 30, 30, 255) if mode == 'RGBA' else (200, 30, 30)).save(buffer, format='PNG')
    return buffer.getvalue()


def upload(chalice_client, token, entity_type, entity_id, content=None):
    encoder = MultipartEncoder(fields={
        'entityType': entity_type,
        'entityId': entity_id,
        'fileContent': ('image.png', content or make_image_bytes(), 'image/png')
    })
    return chalice_client.http.post('/image-upload', headers={
        'Content-Type': encoder.content_type,
        'Authorization': token,
        'X-Client-Id': TEST_CLIENT_ID
    }, body=encoder.to_string())


@pytest.fixture
def mock_s3_upload():
    with patch('chalicelib.images.upload_file_to_s3', side_effect=lambda body, path, content_type: f'https://files/{path}') \
            as upload_file:
        yield upload_file


def test_compress_images_resizes_and_builds_thumbnail():
    with patch.dict('os.environ', {'MAX_IMG_WIDTH': '800', 'MAX_THUMBNAIL_WIDTH': '100'}):
        content_main, content_thumb = images.compress_images(BytesIO(make_image_bytes()))

    assert Image.open(BytesIO(content_main)).size == (800, 400)
    assert Image.open(BytesIO(content_thumb)).size == (100, 50)
    assert Image.open(BytesIO(content_main)).format == 'JPEG'


def test_small_images_are_not_upscaled():
    with patch.dict('os.environ', {'MAX_IMG_WIDTH': '800', 'MAX_THUMBNAIL_WIDTH': '100'}):
        content_main, _ = images.compress_images(BytesIO(make_image_bytes(size=(300, 200), mode='RGB')))

    assert Image.open(BytesIO(content_main)).size == (300, 200)


def test_not_an_image():
    with pytest.raises(exceptions.ValidationException):
        images.compress_images(BytesIO(b"definitely not an image"))


def test_admin_uploads_menu_item_image(chalice_client, fake_db, mock_s3_upload):
    create_test_admin()
    menu_item = create_test_menu_item('Momo', '12.99')

    response = upload(chalice_client, id_admin, 'menu_item', menu_item.id_)

    assert response.status_code == http200, response.body
    paths = [call.args[1] for call in mock_s3_upload.call_args_list]
    assert paths == [f'menu_items/{menu_item.id_}/images/{MAIN_IMAGE_NAME}',
                     f'menu_items/{menu_item.id_}/images/{THUMB_IMAGE_NAME}']
    record = fake_db.record(keys_structure.menu_items_pk, menu_item.id_)
    assert record['image'] == f'https://files/menu_items/{menu_item.id_}/images/{MAIN_IMAGE_NAME}'


def test_user_uploads_own_photo(chalice_client, fake_db, mock_s3_upload):
    create_test_user()
    make_request(chalice_client, endpoint='/preferences', method='PUT', json_body={'photo_permission': True})

    response = upload(chalice_client, id_user, 'user_photo', id_user)

    assert response.status_code == http200, response.body
    assert response.json_body['thumbnail'] == f'https://files/users/{id_user}/images/{THUMB_IMAGE_NAME}'
    assert fake_db.record(keys_structure.users_pk, id_user)['photo_url'] == \
           f'https://files/users/{id_user}/images/{MAIN_IMAGE_NAME}'


def test_upload_permissions(chalice_client, mock_s3_upload):
    create_test_user()
    menu_item = create_test_menu_item('Momo', '12.99')

    assert upload(chalice_client, id_user, 'menu_item', menu_item.id_).status_code == http403
    assert upload(chalice_client, id_user, 'user_photo', 'someone-else').status_code == http403
    assert upload(chalice_client, id_user, 'restaurant', 'r1').status_code == http400
    mock_s3_upload.assert_not_called()


def test_user_photo_requires_upload_permission(chalice_client, fake_db, mock_s3_upload):
    create_test_user()

    response = upload(chalice_client, id_user, 'user_photo', id_user)

    assert response.status_code == http403
    assert response.json_body['error'] == 'Photo uploads are not allowed yet, grant the permission first'
    mock_s3_upload.assert_not_called()
    assert 'photo_url' not in fake_db.record(keys_structure.users_pk, id_user)
