from decimal import Decimal
from typing import Tuple, List, Dict
from uuid import uuid4

from boto3.dynamodb.conditions import Attr, Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ROLE_SELLER
from chalicelib.constants.status_codes import http200
from chalicelib.constants.substitute_keys import to_db
from chalicelib.sellers import require_seller_profile
from chalicelib.utils import auth as utils_auth, data as utils_data, db as utils_db, app as utils_app
from chalicelib.utils.data import substitute_keys
from chalicelib.utils.logger import logger


class Product(EntityBase):
    pk = keys_structure.products_pk
    sk = keys_structure.products_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'seller_id': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'name_': lambda x: isinstance(x, str) and len(x) > 0,
        'price': lambda x: isinstance(x, Decimal) and x >= 0,
        'stock_quantity': lambda x: isinstance(x, Decimal) and x >= 0,
        'is_active': lambda x: isinstance(x, bool),
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'description': lambda x: isinstance(x, str),
        'category': lambda x: isinstance(x, str),
        'sku': lambda x: isinstance(x, str),
        'images': lambda x: isinstance(x, list)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.seller_id: str = kwargs.get('seller_id')
        self.name_: str = kwargs.get('name_')
        self.description: str = kwargs.get('description')
        self.category: str = kwargs.get('category')
        self.sku: str = kwargs.get('sku')
        self.images: list = kwargs.get('images', [])
        self.price: Decimal = utils_data.to_decimal(kwargs.get('price'))
        self.stock_quantity: Decimal = utils_data.to_decimal(kwargs.get('stock_quantity', 0), '1')
        self.is_active: bool = kwargs.get('is_active', True)
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or now_iso()
        self.record_type = 'product'

    @classmethod
    def init_get_by_id(cls, product_id):
        c = cls(product_id)
        c.__init__(**c._get_db_item())
        return c

    @classmethod
    @utils_auth.authenticate_class
    def init_request_create(cls, request):
        logger.info("init_request_create ::: started")
        utils_auth.require_role(request.auth_result, ROLE_SELLER)
        seller = require_seller_profile(request.auth_result['user_id'])
        request_body = utils_data.parse_raw_body(request)
        substitute_keys(dict_to_process=request_body, base_keys=to_db)
        for field in ('id_', 'seller_id'):
            request_body.pop(field, None)
        return cls(id_=str(uuid4()), seller_id=seller.id_, **request_body)

    @classmethod
    @utils_auth.authenticate_class
    def init_request_update(cls, request, product_id, special_body=None):
        logger.info("init_request_update ::: started")
        product = cls.init_get_by_id(product_id)
        utils_auth.require_owner_or_admin(request.auth_result, product.seller_id)
        product._merge_request_body(special_body or utils_data.parse_raw_body(request))
        return product

    @staticmethod
    @utils_app.log_start_finish
    def endpoint_get_all(request) -> Response:
        query_params = request.query_params or {}
        filter_expression = Attr('is_active').eq(True)
        if query_params.get('category'):
            filter_expression = filter_expression & Attr('category').eq(query_params['category'])
        if query_params.get('seller_id'):
            filter_expression = filter_expression & Attr('seller_id').eq(query_params['seller_id'])
        products: List[Dict] = [
            Product(**record)._to_ui() for record in utils_db.query_items_paged(
                Key('partkey').eq(keys_structure.products_pk), filter_expression=filter_expression)
        ]
        return Response(status_code=http200, body=products)

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_get_by_id(self) -> Response:
        return Response(status_code=http200, body=self._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_create(self) -> Response:
        self._create_db_record()
        return Response(status_code=http200, body={'message': 'Product successfully created', 'id': self.id_})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_update(self) -> Response:
        self._update_db_record()
        return Response(status_code=http200, body={'message': 'Product was successfully updated', 'id': self.id_})

    def is_orderable(self, quantity) -> bool:
        return self.is_active and self.stock_quantity >= quantity

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(product_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'seller_id': self.seller_id,
            'name_': self.name_,
            'description': self.description,
            'category': self.category,
            'sku': self.sku,
            'images': self.images,
            'price': self.price,
            'stock_quantity': self.stock_quantity,
            'is_active': self.is_active,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }
