from decimal import Decimal
from typing import Tuple, List, Dict
from uuid import uuid4

from boto3.dynamodb.conditions import Attr, Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ROLE_SELLER, DEFAULT_DELIVERY_FEE
from chalicelib.constants.status_codes import http200
from chalicelib.constants.substitute_keys import to_db
from chalicelib.sellers import require_seller_profile
from chalicelib.utils import auth as utils_auth, data as utils_data, db as utils_db, app as utils_app
from chalicelib.utils.data import substitute_keys
from chalicelib.utils.logger import logger


class Restaurant(EntityBase):
    pk = keys_structure.restaurants_pk
    sk = keys_structure.restaurants_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'seller_id': lambda x: isinstance(x, str),
        "date_created": lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'name_': lambda x: isinstance(x, str) and len(x) > 0,
        'delivery_fee': lambda x: isinstance(x, Decimal) and x >= 0,
        'is_active': lambda x: isinstance(x, bool),
        "date_updated": lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'description': lambda x: isinstance(x, str),
        'cuisine_type': lambda x: isinstance(x, str),
        'logo_url': lambda x: isinstance(x, str),
        'address': lambda x: isinstance(x, str),
        'min_order_amount': lambda x: isinstance(x, Decimal) and x >= 0,
        'rating': lambda x: isinstance(x, Decimal) and 0 <= x <= 5
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.seller_id: str = kwargs.get('seller_id')
        self.name_: str = kwargs.get('name_')
        self.description: str = kwargs.get('description')
        self.cuisine_type: str = kwargs.get('cuisine_type')
        self.logo_url: str = kwargs.get('logo_url')
        self.address: str = kwargs.get('address')
        self.delivery_fee: Decimal = utils_data.to_decimal(kwargs.get('delivery_fee', DEFAULT_DELIVERY_FEE))
        self.min_order_amount: Decimal = utils_data.to_decimal(kwargs.get('min_order_amount'))
        self.rating: Decimal = utils_data.to_decimal(kwargs.get('rating'), '1.0')
        self.is_active: bool = kwargs.get('is_active', True)
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or now_iso()
        self.record_type = 'restaurant'

    @classmethod
    @utils_auth.authenticate_class
    def init_request_create(cls, request):
        logger.info("init_request_create ::: started")
        utils_auth.require_role(request.auth_result, ROLE_SELLER)
        seller = require_seller_profile(request.auth_result['user_id'])
        request_body = utils_data.parse_raw_body(request)
        substitute_keys(dict_to_process=request_body, base_keys=to_db)
        for field in ('id_', 'seller_id', 'rating', 'is_active'):
            request_body.pop(field, None)
        return cls(id_=str(uuid4()), seller_id=seller.id_, **request_body)

    @classmethod
    @utils_auth.authenticate_class
    def init_request_update(cls, request, restaurant_id, special_body=None):
        logger.info("init_request_update ::: started")
        restaurant = cls.init_get_by_id(restaurant_id)
        utils_auth.require_owner_or_admin(request.auth_result, restaurant.seller_id)
        restaurant._merge_request_body(special_body or utils_data.parse_raw_body(request))
        return restaurant

    @classmethod
    def init_get_by_id(cls, restaurant_id):
        logger.info("init_get_by_id ::: started")
        c = cls(restaurant_id)
        c.__init__(**c._get_db_item())
        return c

    @staticmethod
    @utils_app.log_start_finish
    def endpoint_get_all(request) -> Response:
        restaurant_db_records: List[Dict] = utils_db.query_items_paged(
            Key('partkey').eq(keys_structure.restaurants_pk),
            filter_expression=Attr('is_active').eq(True)
        )
        restaurants: List[Dict] = [Restaurant(**record)._to_ui() for record in restaurant_db_records]
        cuisine_type = (request.query_params or {}).get('cuisine_type')
        if cuisine_type:
            restaurants = [item for item in restaurants if item.get('cuisine_type') == cuisine_type]
        logger.info(f"endpoint_get_all ::: returning restaurants={[rest['id'] for rest in restaurants]}")
        return Response(status_code=http200, body=restaurants)

    @staticmethod
    @utils_auth.authenticate
    def endpoint_get_own(request) -> Response:
        utils_auth.require_role(request.auth_result, ROLE_SELLER)
        restaurants: List[Dict] = [
            Restaurant(**record)._to_ui() for record in get_seller_restaurants(request.auth_result['user_id'])
        ]
        return Response(status_code=http200, body=restaurants)

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_get_by_id(self) -> Response:
        return Response(status_code=http200, body=self._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_create(self) -> Response:
        self._create_db_record()
        return Response(status_code=http200, body={'message': 'Restaurant successfully created', 'id': self.id_})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_update(self) -> Response:
        self._update_db_record()
        return Response(status_code=http200, body={'message': 'Restaurant was successfully updated', 'id': self.id_})

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(restaurant_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'seller_id': self.seller_id,
            'name_': self.name_,
            'description': self.description,
            'cuisine_type': self.cuisine_type,
            'logo_url': self.logo_url,
            'address': self.address,
            'delivery_fee': self.delivery_fee,
            'min_order_amount': self.min_order_amount,
            'rating': self.rating,
            'is_active': self.is_active,
            "date_created": self.date_created,
            "date_updated": self.date_updated
        }


def get_seller_restaurants(seller_id) -> List[Dict]:
    return utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.restaurants_pk),
        filter_expression=Attr('seller_id').eq(seller_id)
    )
