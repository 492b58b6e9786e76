from decimal import Decimal
from typing import Tuple, List, Dict
from uuid import uuid4

from boto3.dynamodb.conditions import Attr, Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ROLE_PROPERTY_SELLER
from chalicelib.constants.status_codes import http200
from chalicelib.utils import auth as utils_auth, data as utils_data, db as utils_db, app as utils_app
from chalicelib.utils.logger import logger
from chalicelib.utils.phone import normalize_phone_number

PROPERTY_TYPES = ('apartment', 'house', 'land', 'commercial', 'bedsitter', 'studio')
COORDINATE_EXP = '1.000000'


class Property(EntityBase):
    pk = keys_structure.properties_pk
    sk = keys_structure.properties_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'seller_id': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'title': lambda x: isinstance(x, str) and len(x) > 0,
        'is_active': lambda x: isinstance(x, bool),
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'description': lambda x: isinstance(x, str),
        'property_type': lambda x: x in PROPERTY_TYPES,
        'listing_type': lambda x: x in ('rent', 'sale'),
        'price': lambda x: isinstance(x, Decimal) and x >= 0,
        'bedrooms': lambda x: isinstance(x, Decimal) and x >= 0,
        'bathrooms': lambda x: isinstance(x, Decimal) and x >= 0,
        'size': lambda x: isinstance(x, str),
        'location': lambda x: isinstance(x, str),
        'latitude': lambda x: isinstance(x, Decimal) and -90 <= x <= 90,
        'longitude': lambda x: isinstance(x, Decimal) and -180 <= x <= 180,
        'contact_phone': lambda x: isinstance(x, str),
        'contact_email': lambda x: isinstance(x, str),
        'images': lambda x: isinstance(x, list)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.seller_id: str = kwargs.get('seller_id')
        self.title: str = kwargs.get('title')
        self.description: str = kwargs.get('description')
        self.property_type: str = kwargs.get('property_type')
        self.listing_type: str = kwargs.get('listing_type')
        self.price: Decimal = utils_data.to_decimal(kwargs.get('price'))
        self.bedrooms: Decimal = utils_data.to_decimal(kwargs.get('bedrooms'), '1')
        self.bathrooms: Decimal = utils_data.to_decimal(kwargs.get('bathrooms'), '1')
        self.size: str = kwargs.get('size')
        self.location: str = kwargs.get('location')
        self.latitude: Decimal = utils_data.to_decimal(kwargs.get('latitude'), COORDINATE_EXP)
        self.longitude: Decimal = utils_data.to_decimal(kwargs.get('longitude'), COORDINATE_EXP)
        self.contact_phone: str = kwargs.get('contact_phone')
        self.contact_email: str = kwargs.get('contact_email')
        self.images: list = kwargs.get('images', [])
        self.is_active: bool = kwargs.get('is_active', True)
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or now_iso()
        self.record_type = 'property'

    @classmethod
    def init_get_by_id(cls, property_id):
        c = cls(property_id)
        c.__init__(**c._get_db_item())
        return c

    @classmethod
    @utils_auth.authenticate_class
    def init_request_create(cls, request):
        logger.info("init_request_create ::: started")
        utils_auth.require_role(request.auth_result, ROLE_PROPERTY_SELLER)
        request_body = utils_data.parse_raw_body(request)
        for field in ('id', 'id_', 'seller_id'):
            request_body.pop(field, None)
        if request_body.get('contact_phone'):
            request_body['contact_phone'] = normalize_phone_number(request_body['contact_phone'])
        return cls(id_=str(uuid4()), seller_id=request.auth_result['user_id'], **request_body)

    @classmethod
    @utils_auth.authenticate_class
    def init_request_update(cls, request, property_id, special_body=None):
        logger.info("init_request_update ::: started")
        property_ = cls.init_get_by_id(property_id)
        utils_auth.require_owner_or_admin(request.auth_result, property_.seller_id)
        request_body = special_body or utils_data.parse_raw_body(request)
        if request_body.get('contact_phone'):
            request_body['contact_phone'] = normalize_phone_number(request_body['contact_phone'])
        property_._merge_request_body(request_body)
        return property_

    @staticmethod
    @utils_app.log_start_finish
    def endpoint_get_all(request) -> Response:
        query_params = request.query_params or {}
        filter_expression = Attr('is_active').eq(True)
        for field in ('property_type', 'listing_type', 'seller_id'):
            if query_params.get(field):
                filter_expression = filter_expression & Attr(field).eq(query_params[field])
        properties: List[Dict] = [
            Property(**record)._to_ui() for record in utils_db.query_items_paged(
                Key('partkey').eq(keys_structure.properties_pk), filter_expression=filter_expression)
        ]
        return Response(status_code=http200, body=properties)

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_get_by_id(self) -> Response:
        return Response(status_code=http200, body=self._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_create(self) -> Response:
        self._create_db_record()
        return Response(status_code=http200, body={'message': 'Property successfully listed', 'id': self.id_})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_update(self) -> Response:
        self._update_db_record()
        return Response(status_code=http200, body={'message': 'Property was successfully updated', 'id': self.id_})

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(property_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'seller_id': self.seller_id,
            'title': self.title,
            'description': self.description,
            'property_type': self.property_type,
            'listing_type': self.listing_type,
            'price': self.price,
            'bedrooms': self.bedrooms,
            'bathrooms': self.bathrooms,
            'size': self.size,
            'location': self.location,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'contact_phone': self.contact_phone,
            'contact_email': self.contact_email,
            'images': self.images,
            'is_active': self.is_active,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }
