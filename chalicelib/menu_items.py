from decimal import Decimal
from typing import List, Dict, Tuple
from uuid import uuid4

from boto3.dynamodb.conditions import Attr, Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.status_codes import http200
from chalicelib.constants.substitute_keys import to_db
from chalicelib.restaurants import Restaurant
from chalicelib.utils import auth as utils_auth, data as utils_data, db as utils_db, app as utils_app
from chalicelib.utils.data import substitute_keys
from chalicelib.utils.logger import logger


class MenuItem(EntityBase):
    pk = keys_structure.menu_items_pk
    sk = keys_structure.menu_items_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'restaurant_id': lambda x: isinstance(x, str),
        "date_created": lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'name_': lambda x: isinstance(x, str) and len(x) > 0,
        'price': lambda x: isinstance(x, Decimal) and x >= 0,
        'is_available': lambda x: isinstance(x, bool),
        "date_updated": lambda x: isinstance(x, str),
        "archived": lambda x: isinstance(x, bool)
    }

    optional_fields_validation = {
        'description': lambda x: isinstance(x, str),
        'category': lambda x: isinstance(x, str),
        'image_url': lambda x: isinstance(x, str),
        'preparation_time': lambda x: isinstance(x, Decimal) and x >= 0
    }

    def __init__(self, id_, restaurant_id, **kwargs):
        EntityBase.__init__(self, id_)

        self.restaurant_id: str = restaurant_id
        self.name_: str = kwargs.get('name_')
        self.description: str = kwargs.get('description')
        self.category: str = kwargs.get('category')
        self.image_url: str = kwargs.get('image_url')
        self.price: Decimal = utils_data.to_decimal(kwargs.get('price'))
        self.preparation_time: Decimal = utils_data.to_decimal(kwargs.get('preparation_time'), '1')
        self.is_available: bool = kwargs.get('is_available', True)
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or now_iso()
        self.archived: bool = kwargs.get('archived', False)
        self.record_type = 'menu_item'

    @classmethod
    @utils_auth.authenticate_class
    def init_request_create(cls, request, restaurant_id):
        logger.info("init_request_create ::: started")
        restaurant = Restaurant.init_get_by_id(restaurant_id)
        utils_auth.require_owner_or_admin(request.auth_result, restaurant.seller_id)
        request_body = utils_data.parse_raw_body(request)
        substitute_keys(dict_to_process=request_body, base_keys=to_db)
        for field in ('id_', 'restaurant_id', 'archived'):
            request_body.pop(field, None)
        return cls(id_=str(uuid4()), restaurant_id=restaurant_id, **request_body)

    @classmethod
    @utils_auth.authenticate_class
    def init_request_update(cls, request, restaurant_id, menu_item_id, special_body=None):
        logger.info("init_request_update ::: started")
        restaurant = Restaurant.init_get_by_id(restaurant_id)
        utils_auth.require_owner_or_admin(request.auth_result, restaurant.seller_id)
        menu_item = cls.init_get_by_id(menu_item_id, restaurant_id)
        menu_item._merge_request_body(special_body or utils_data.parse_raw_body(request))
        return menu_item

    @classmethod
    def init_get_by_id(cls, menu_item_id, restaurant_id):
        logger.info("init_get_by_id ::: started")
        c = cls(id_=menu_item_id, restaurant_id=restaurant_id)
        c.__init__(**c._get_db_item())
        return c

    @staticmethod
    @utils_app.log_start_finish
    def endpoint_get_menu_items(request, restaurant_id) -> Response:
        menu_item_db_records: List[Dict] = utils_db.query_items_paged(
            Key('partkey').eq(keys_structure.menu_items_pk.format(restaurant_id=restaurant_id)),
            filter_expression=Attr('archived').eq(False)
        )
        menu_items: List[Dict] = [MenuItem(**record)._to_ui() for record in menu_item_db_records]
        logger.info(f"endpoint_get_menu_items ::: returning menu items={[item['id'] for item in menu_items]}")
        return Response(status_code=http200, body=menu_items)

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_create_menu_item(self) -> Response:
        self._create_db_record()
        return Response(status_code=http200, body={'message': 'Menu item successfully created', 'id': self.id_})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_update_menu_item(self) -> Response:
        self._update_db_record()
        return Response(status_code=http200, body={'message': 'Menu item was successfully updated', 'id': self.id_})

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk.format(restaurant_id=self.restaurant_id), self.sk.format(menu_item_id=self.id_)

    def is_orderable(self) -> bool:
        return self.is_available and not self.archived

    def _to_dict(self):
        return {
            'id_': self.id_,
            'restaurant_id': self.restaurant_id,
            'name_': self.name_,
            'description': self.description,
            'category': self.category,
            'image_url': self.image_url,
            'price': self.price,
            'preparation_time': self.preparation_time,
            'is_available': self.is_available,
            "date_created": self.date_created,
            "date_updated": self.date_updated,
            "archived": self.archived
        }
