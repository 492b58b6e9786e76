import os
import re
from io import BytesIO
from typing import Tuple, Dict
from uuid import uuid4

from chalice import Response
from PIL import Image
from requests_toolbelt.multipart.decoder import MultipartDecoder

from chalicelib.constants.constants import MAIN_IMAGE_NAME, THUMB_IMAGE_NAME
from chalicelib.constants.status_codes import http200
from chalicelib.menu_items import MenuItem
from chalicelib.products import Product
from chalicelib.properties import Property
from chalicelib.restaurants import Restaurant
from chalicelib.utils import auth as utils_auth, app as utils_app, exceptions
from chalicelib.utils.logger import logger
from chalicelib.utils.s3 import upload_file_to_s3, public_file_url

entities_to_upload_attachment_white_list = ['restaurant', 'menu_item', 'product', 'property']

DEFAULT_MAX_IMG_WIDTH = 1200
DEFAULT_MAX_THUMBNAIL_WIDTH = 300
FIELD_NAME_PATTERN = re.compile(r'name="([^"]+)"')


def get_resize_width_height(image: Image.Image, max_width: int) -> Tuple[int, int]:
    width, height = image.size
    divider = max([width, height]) / max_width
    if divider <= 1:
        return width, height
    return int(width / divider), int(height / divider)


def get_thumbnail(image: Image.Image) -> Image.Image:
    image_thumb = image.copy()
    max_width = int(os.environ.get('MAX_THUMBNAIL_WIDTH', DEFAULT_MAX_THUMBNAIL_WIDTH))
    image_thumb.thumbnail(size=get_resize_width_height(image_thumb, max_width))
    return image_thumb


def compress_images(image_file_obj: BytesIO) -> Tuple[bytes, bytes]:
    """ Returns (main, thumbnail) JPEG bytes """
    image: Image.Image = Image.open(image_file_obj).convert('RGB')
    max_width = int(os.environ.get('MAX_IMG_WIDTH', DEFAULT_MAX_IMG_WIDTH))
    image = image.resize(size=get_resize_width_height(image, max_width))

    image_thumb: Image.Image = get_thumbnail(image)

    buf_main = BytesIO()
    image.save(buf_main, format='JPEG', optimize=True, quality=85)

    buf_thumb = BytesIO()
    image_thumb.save(buf_thumb, format='JPEG', optimize=True, quality=85)

    return buf_main.getvalue(), buf_thumb.getvalue()


def parse_multipart_request_data(current_request) -> Dict[str, bytes]:
    content_type = current_request.headers.get('content-type', '')
    if not content_type.startswith('multipart/form-data'):
        raise exceptions.ValidationException('Request must be multipart/form-data')
    fields = {}
    for part in MultipartDecoder(current_request.raw_body, content_type).parts:
        disposition = part.headers.get(b'Content-Disposition', b'').decode('utf-8')
        match = FIELD_NAME_PATTERN.search(disposition)
        if match:
            fields[match.group(1)] = part.content
    missing = [field for field in ('entityType', 'entityId', 'fileContent') if not fields.get(field)]
    if missing:
        raise exceptions.MandatoryFieldsAreNotFilled(f'Multipart fields {missing} are required')
    return fields


def get_entity_for_upload(auth_result: dict, entity_type: str, entity_id: str, restaurant_id: str = None):
    """ Loads the entity the image belongs to and checks the caller owns it """
    if entity_type == 'restaurant':
        entity = Restaurant.init_get_by_id(entity_id)
        owner_id = entity.seller_id
    elif entity_type == 'menu_item':
        if not restaurant_id:
            raise exceptions.MandatoryFieldsAreNotFilled('restaurantId is required for menu item images')
        entity = MenuItem.init_get_by_id(entity_id, restaurant_id)
        owner_id = Restaurant.init_get_by_id(restaurant_id).seller_id
    elif entity_type == 'product':
        entity = Product.init_get_by_id(entity_id)
        owner_id = entity.seller_id
    elif entity_type == 'property':
        entity = Property.init_get_by_id(entity_id)
        owner_id = entity.seller_id
    else:
        raise exceptions.ValidationException(f'You could not upload attachment to {entity_type=}')
    utils_auth.require_owner_or_admin(auth_result, owner_id)
    return entity


def attach_image_url(entity, entity_type: str, url: str) -> None:
    if entity_type == 'restaurant':
        entity.logo_url = url
    elif entity_type == 'menu_item':
        entity.image_url = url
    else:
        entity.images = [*(entity.images or []), url]
    entity._update_db_record()


@utils_app.request_exception_handler
@utils_auth.authenticate
def image_upload(current_request) -> Response:
    fields = parse_multipart_request_data(current_request)
    entity_type = fields['entityType'].decode('utf-8')
    entity_id = fields['entityId'].decode('utf-8')
    restaurant_id = fields['restaurantId'].decode('utf-8') if fields.get('restaurantId') else None

    entity = get_entity_for_upload(current_request.auth_result, entity_type, entity_id, restaurant_id)
    try:
        content_main, content_thumb = compress_images(BytesIO(fields['fileContent']))
    except OSError as error:
        raise exceptions.ValidationException(f'fileContent is not a supported image: {error}')

    image_path = f'{entity_type}/{entity_id}/images/{uuid4()}'
    path_main, path_thumb = f'{image_path}/{MAIN_IMAGE_NAME}', f'{image_path}/{THUMB_IMAGE_NAME}'
    upload_file_to_s3(content_main, path_main, 'image/jpeg')
    upload_file_to_s3(content_thumb, path_thumb, 'image/jpeg')

    url = public_file_url(path_main)
    attach_image_url(entity, entity_type, url)
    logger.info(f'image_upload ::: {entity_type=} {entity_id=} {url=}')
    return Response(status_code=http200, headers={"Content-Type": 'application/json'},
                    body={'message': f'{entity_type} image was updated successfully',
                          'url': url, 'thumbnail_url': public_file_url(path_thumb)})
