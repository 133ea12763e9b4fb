import copy
import os
from io import BytesIO
from typing import Tuple, Dict

from chalice import Response
from PIL import Image, UnidentifiedImageError
from requests_toolbelt.multipart.decoder import MultipartDecoder

from chalicelib import app_state
from chalicelib.constants.constants import MAIN_IMAGE_NAME, THUMB_IMAGE_NAME, ROLE_ADMIN
from chalicelib.constants.status_codes import http200
from chalicelib.menu_items import MenuItem
from chalicelib.users import User
from chalicelib.utils import auth as utils_auth, app as utils_app, exceptions
from chalicelib.utils.logger import logger
from chalicelib.utils.s3 import upload_file_to_s3

ENTITY_MENU_ITEM = 'menu_item'
ENTITY_USER_PHOTO = 'user_photo'
entities_to_upload_attachment_white_list = [ENTITY_MENU_ITEM, ENTITY_USER_PHOTO]


def get_resize_width_height(image: Image, max_width: int) -> Tuple[int, int]:
    width, height = image.size
    divider = max(max([width, height]) / max_width, 1)
    return int(width / divider), int(height / divider)


def get_thumbnail(image: Image) -> Image:
    image_thumb = copy.deepcopy(image)
    image_thumb.thumbnail(size=get_resize_width_height(image_thumb, int(os.environ.get('MAX_THUMBNAIL_WIDTH', 200))))
    return image_thumb


def compress_images(image_file_obj: BytesIO) -> Tuple[bytes, bytes]:
    try:
        image: Image = Image.open(image_file_obj)
    except UnidentifiedImageError as error:
        raise exceptions.ValidationException('Uploaded file is not an image') from error
    image = image.convert('RGB')
    image = image.resize(size=get_resize_width_height(image, int(os.environ.get('MAX_IMG_WIDTH', 1200))))

    image_thumb: Image = get_thumbnail(image)

    buf_main = BytesIO()
    image.save(buf_main, format='JPEG', optimize=True, quality=90)

    buf_thumb = BytesIO()
    image_thumb.save(buf_thumb, format='JPEG', optimize=True, quality=90)

    return buf_main.getvalue(), buf_thumb.getvalue()


def _part_name(part) -> str:
    disposition = part.headers.get(b'Content-Disposition', b'').decode('utf-8')
    for chunk in disposition.split(';'):
        key, _, value = chunk.strip().partition('=')
        if key == 'name':
            return value.strip('"')
    return ''


def parse_multipart_request_data(current_request) -> Dict:
    content_type = (current_request.headers or {}).get('content-type', '')
    if not content_type.startswith('multipart/form-data'):
        raise exceptions.ValidationException('multipart/form-data request is expected')
    fields = {_part_name(part): part.content for part in MultipartDecoder(current_request.raw_body, content_type).parts}
    for field in ('entityType', 'entityId', 'fileContent'):
        if not fields.get(field):
            raise exceptions.ValidationException(f'{field} is required')
    return {
        'entity_type': fields['entityType'].decode('utf-8'),
        'entity_id': fields['entityId'].decode('utf-8'),
        'file_content': fields['fileContent']
    }


def check_upload_permissions(auth_result: Dict, entity_type: str, entity_id: str):
    if entity_type not in entities_to_upload_attachment_white_list:
        raise exceptions.ValidationException(f'You could not upload attachment to {entity_type=}')
    if entity_type == ENTITY_MENU_ITEM and auth_result['role'] != ROLE_ADMIN:
        raise exceptions.AccessDenied('Only admins can upload menu item images')
    if entity_type == ENTITY_USER_PHOTO and entity_id != auth_result['user_id']:
        raise exceptions.AccessDenied('You can only upload your own photo')


def check_photo_permission(current_request):
    """User photos need the one-time upload permission granted from the same browser"""
    if not app_state.init_request_state_store(current_request).get_photo_permission():
        raise exceptions.AccessDenied('Photo uploads are not allowed yet, grant the permission first')


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def image_upload(current_request) -> Response:
    data = parse_multipart_request_data(current_request)
    entity_type, entity_id = data['entity_type'], data['entity_id']
    check_upload_permissions(current_request.auth_result, entity_type, entity_id)
    if entity_type == ENTITY_USER_PHOTO:
        check_photo_permission(current_request)

    if entity_type == ENTITY_MENU_ITEM:
        entity = MenuItem.init_get_by_id(entity_id)
        images_path = f'menu_items/{entity_id}/images'
    else:
        entity = User.init_by_id(entity_id)
        images_path = f'users/{entity_id}/images'

    content_main, content_thumb = compress_images(BytesIO(data['file_content']))
    url_main = upload_file_to_s3(content_main, f'{images_path}/{MAIN_IMAGE_NAME}', 'image/jpeg')
    url_thumb = upload_file_to_s3(content_thumb, f'{images_path}/{THUMB_IMAGE_NAME}', 'image/jpeg')

    if entity_type == ENTITY_MENU_ITEM:
        entity.image = url_main
    else:
        entity.photo_url = url_main
    entity._update_db_record()
    logger.info(f'image_upload ::: {entity_type} {entity_id} image updated')
    return Response(status_code=http200, headers={"Content-Type": 'application/json'},
                    body={'message': f'{entity_type} image was updated successfully',
                          'image': url_main, 'thumbnail': url_thumb})
