from decimal import Decimal
from typing import Tuple, List, Dict
from uuid import uuid4

from boto3.dynamodb.conditions import Key, Attr
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ORDER_TYPE_FOOD, ORDER_TYPES, \
    DEFAULT_DELIVERY_FEE, PAYMENT_PROVIDERS, PROVIDER_MPESA, ROLE_SELLER, ROLE_DRIVER, ROLE_ADMIN
from chalicelib.constants.status_codes import http200
from chalicelib.constants.statuses import ORDER_PENDING, ORDER_CONFIRMED, ORDER_SHIPPED, ORDER_DELIVERED, \
    ORDER_CANCELLED, ORDER_STATUS_TRANSITIONS, ORDER_PAYABLE_STATUSES, PAYMENT_PENDING, PAYMENT_COMPLETED
from chalicelib.menu_items import MenuItem
from chalicelib.payments import pay_order
from chalicelib.products import Product
from chalicelib.restaurants import Restaurant
from chalicelib.users import User
from chalicelib.utils import auth as utils_auth, \
    data as utils_data, \
    db as utils_db, \
    app as utils_app, \
    exceptions, \
    transitions as utils_transitions
from chalicelib.utils.exceptions import OrderNotFound
from chalicelib.utils.logger import logger
from chalicelib.utils.phone import normalize_phone_number

# status changes each party may ask for, admin may do any valid transition
CUSTOMER_STATUSES = (ORDER_CANCELLED,)
SELLER_STATUSES = (ORDER_CONFIRMED, ORDER_SHIPPED, ORDER_CANCELLED)
DRIVER_STATUSES = (ORDER_SHIPPED, ORDER_DELIVERED)


class Order(EntityBase):
    pk = keys_structure.orders_pk
    sk = keys_structure.orders_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'customer_id': lambda x: isinstance(x, str),
        'order_type': lambda x: x in ORDER_TYPES,
        'seller_id': lambda x: isinstance(x, str),
        'items': lambda x: isinstance(x, list) and len(x) > 0,
        'delivery_fee': lambda x: isinstance(x, Decimal) and x >= 0,
        'total_amount': lambda x: isinstance(x, Decimal) and x >= 0,
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'delivery_address': lambda x: isinstance(x, str) and len(x) > 0,
        'payment_method': lambda x: x in PAYMENT_PROVIDERS,
        'payment_status': lambda x: isinstance(x, str),
        'status_': lambda x: x in ORDER_STATUS_TRANSITIONS,
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'restaurant_id': lambda x: isinstance(x, str),
        'driver_id': lambda x: isinstance(x, str),
        'special_instructions': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.customer_id: str = kwargs.get('customer_id')
        self.order_type: str = kwargs.get('order_type', ORDER_TYPE_FOOD)
        self.restaurant_id: str = kwargs.get('restaurant_id')
        self.seller_id: str = kwargs.get('seller_id')
        self.driver_id: str = kwargs.get('driver_id')
        self.items: List[Dict] = kwargs.get('items', [])
        self.delivery_address: str = kwargs.get('delivery_address')
        self.special_instructions: str = kwargs.get('special_instructions')
        self.delivery_fee: Decimal = utils_data.to_decimal(kwargs.get('delivery_fee'))
        self.total_amount: Decimal = utils_data.to_decimal(kwargs.get('total_amount'))
        self.payment_method: str = kwargs.get('payment_method', PROVIDER_MPESA)
        self.payment_status: str = kwargs.get('payment_status', PAYMENT_PENDING)
        self.status_: str = kwargs.get('status_', ORDER_PENDING)
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or now_iso()
        self.record_type = 'order'

    @classmethod
    def init_get_by_id(cls, order_id):
        c = cls(order_id)
        try:
            c.__init__(**c._get_db_item())
        except exceptions.RecordNotFound:
            raise OrderNotFound(f'Order {order_id} not found')
        return c

    @classmethod
    @utils_auth.authenticate_class
    def init_request_create(cls, request):
        logger.info("init_request_create ::: started")
        utils_auth.require_registered(request.auth_result)
        request_body = utils_data.parse_raw_body(request)
        order_type = request_body.get('order_type', ORDER_TYPE_FOOD)
        if order_type not in ORDER_TYPES:
            raise exceptions.ValidationException(f'order_type must be one of {ORDER_TYPES}')
        requested_items = request_body.get('items')
        if not isinstance(requested_items, list) or not requested_items:
            raise exceptions.MandatoryFieldsAreNotFilled('items must be a non empty list')

        c = cls(
            id_=str(uuid4()),
            customer_id=request.auth_result['user_id'],
            order_type=order_type,
            delivery_address=request_body.get('delivery_address'),
            special_instructions=request_body.get('special_instructions'),
            payment_method=request_body.get('payment_method', PROVIDER_MPESA)
        )
        if order_type == ORDER_TYPE_FOOD:
            c._fill_food_items(request_body.get('restaurant_id'), requested_items)
        else:
            c._fill_marketplace_items(requested_items)
        c._calculate_total()
        return c

    @classmethod
    @utils_auth.authenticate_class
    def init_request_get(cls, request, order_id):
        logger.info("init_request_get ::: started")
        order = cls.init_get_by_id(order_id)
        if not order._is_visible_to(request.auth_result):
            raise OrderNotFound('Requested order not found')
        return order

    @classmethod
    @utils_auth.authenticate_class
    def init_request_status_update(cls, request, order_id):
        logger.info("init_request_status_update ::: started")
        order = cls.init_get_by_id(order_id)
        order.request_data = {**utils_data.parse_raw_body(request), 'auth_result': request.auth_result}
        return order

    @classmethod
    @utils_auth.authenticate_class
    def init_request_pay(cls, request, order_id):
        logger.info("init_request_pay ::: started")
        order = cls.init_get_by_id(order_id)
        if order.customer_id != request.auth_result['user_id']:
            raise OrderNotFound('Requested order not found')
        order.request_data = utils_data.parse_raw_body(request)
        return order

    def _fill_food_items(self, restaurant_id, requested_items):
        if not restaurant_id:
            raise exceptions.MandatoryFieldsAreNotFilled('restaurant_id is required for food orders')
        restaurant = Restaurant.init_get_by_id(restaurant_id)
        if not restaurant.is_active:
            raise exceptions.SomeItemsAreNotAvailable(f'Restaurant {restaurant_id} is not accepting orders')
        self.restaurant_id = restaurant.id_
        self.seller_id = restaurant.seller_id
        self.delivery_fee = restaurant.delivery_fee if restaurant.delivery_fee is not None else DEFAULT_DELIVERY_FEE
        for requested in requested_items:
            quantity = self._get_quantity(requested)
            try:
                menu_item = MenuItem.init_get_by_id(requested.get('menu_item_id'), restaurant_id)
            except exceptions.RecordNotFound:
                raise exceptions.SomeItemsAreNotAvailable(
                    f"Menu item {requested.get('menu_item_id')} is not on the menu")
            if not menu_item.is_orderable():
                raise exceptions.SomeItemsAreNotAvailable(
                    f'Menu item {menu_item.name_} is currently unavailable, please remove it from the order')
            self.items.append({
                'menu_item_id': menu_item.id_,
                'name_': menu_item.name_,
                'quantity': quantity,
                'unit_price': menu_item.price
            })

    def _fill_marketplace_items(self, requested_items):
        self.delivery_fee = DEFAULT_DELIVERY_FEE
        for requested in requested_items:
            quantity = self._get_quantity(requested)
            try:
                product = Product.init_get_by_id(requested.get('product_id'))
            except exceptions.RecordNotFound:
                raise exceptions.SomeItemsAreNotAvailable(f"Product {requested.get('product_id')} does not exist")
            if not product.is_orderable(quantity):
                raise exceptions.SomeItemsAreNotAvailable(f'Product {product.name_} is out of stock')
            if self.seller_id and self.seller_id != product.seller_id:
                raise exceptions.ValidationException('All products of an order must come from one seller')
            self.seller_id = product.seller_id
            self.items.append({
                'product_id': product.id_,
                'name_': product.name_,
                'quantity': quantity,
                'unit_price': product.price
            })

    @staticmethod
    def _get_quantity(requested) -> Decimal:
        if not isinstance(requested, dict):
            raise exceptions.ValidationException('Every order item must be an object')
        quantity = utils_data.to_decimal(requested.get('quantity', 1), '1')
        if quantity is None or quantity < 1:
            raise exceptions.ValidationException('Item quantity must be a positive number')
        return quantity

    def _calculate_total(self):
        items_amount = sum((item['unit_price'] * item['quantity'] for item in self.items), Decimal('0'))
        self.total_amount = utils_data.to_decimal(items_amount + self.delivery_fee)

    def _is_visible_to(self, auth_result) -> bool:
        return auth_result.get('role') == ROLE_ADMIN or \
            auth_result.get('user_id') in (self.customer_id, self.seller_id, self.driver_id)

    def _check_status_permissions(self, auth_result, new_status):
        user_id, role = auth_result.get('user_id'), auth_result.get('role')
        if role == ROLE_ADMIN:
            return
        if user_id == self.customer_id and new_status in CUSTOMER_STATUSES:
            return
        if user_id == self.seller_id and new_status in SELLER_STATUSES:
            return
        if role == ROLE_DRIVER and new_status in DRIVER_STATUSES and self.driver_id in (None, user_id):
            return
        raise exceptions.AccessDenied(f'user {user_id} can not move order {self.id_} to {new_status}')

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_create_order(self) -> Response:
        self._create_db_record()
        return Response(status_code=http200, body=self._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_get_by_id(self) -> Response:
        return Response(status_code=http200, body=self._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_update_status(self) -> Response:
        auth_result = self.request_data['auth_result']
        new_status = self.request_data.get('status')
        if not new_status:
            raise exceptions.MandatoryFieldsAreNotFilled('status is required')
        self._check_status_permissions(auth_result, new_status)
        extra_fields = {}
        if auth_result.get('role') == ROLE_DRIVER and not self.driver_id:
            extra_fields['driver_id'] = auth_result['user_id']
        attributes = utils_transitions.write_status(
            dict(zip(('partkey', 'sortkey'), self._get_pk_sk())),
            ORDER_STATUS_TRANSITIONS, self.status_, new_status, self.record_type, extra_fields=extra_fields
        )
        self.__init__(**attributes)
        return Response(status_code=http200, body=self._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_pay(self) -> Response:
        if self.payment_status == PAYMENT_COMPLETED:
            raise exceptions.ValidationException(f'Order {self.id_} is already paid')
        if self.status_ not in ORDER_PAYABLE_STATUSES:
            raise exceptions.ValidationException(f'Order {self.id_} is {self.status_} and can not be paid')
        phone = self.request_data.get('phone') or User.init_by_id(self.customer_id).phone
        if not phone:
            raise exceptions.MandatoryFieldsAreNotFilled('phone is required to pay with M-Pesa')
        result = pay_order(normalize_phone_number(phone), self.total_amount, self.id_)
        return Response(status_code=http200, body=result.to_dict())

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(order_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'customer_id': self.customer_id,
            'order_type': self.order_type,
            'restaurant_id': self.restaurant_id,
            'seller_id': self.seller_id,
            'driver_id': self.driver_id,
            'items': self.items,
            'delivery_address': self.delivery_address,
            'special_instructions': self.special_instructions,
            'delivery_fee': self.delivery_fee,
            'total_amount': self.total_amount,
            'payment_method': self.payment_method,
            'payment_status': self.payment_status,
            'status_': self.status_,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }

    def _to_ui(self):
        item = EntityBase._to_ui(self)
        item['items'] = [
            {('name' if key == 'name_' else key): value for key, value in order_item.items()}
            for order_item in self.items
        ]
        return item


def get_all_orders(filter_expression=None) -> List[Dict]:
    records = utils_db.query_items_paged(
        key_condition_expression=Key('partkey').eq(keys_structure.orders_pk),
        filter_expression=filter_expression
    )
    records.sort(key=lambda record: record.get('date_created', ''), reverse=True)
    return records


@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_orders(request):
    """
    seller - orders of own shop, driver - assigned orders and confirmed orders
    nobody picked up yet, admin - everything, anybody else - own orders
    """
    auth_result = request.auth_result
    user_id, user_role = auth_result['user_id'], auth_result['role']
    status = (request.query_params or {}).get('status')
    if user_role == ROLE_SELLER:
        filter_expression = Attr('seller_id').eq(user_id)
    elif user_role == ROLE_DRIVER:
        filter_expression = Attr('driver_id').eq(user_id) | \
            (Attr('driver_id').not_exists() & Attr('status_').eq(ORDER_CONFIRMED))
    elif user_role == ROLE_ADMIN:
        filter_expression = None
    else:
        utils_auth.require_registered(auth_result)
        filter_expression = Attr('customer_id').eq(user_id)

    if status:
        status_filter = Attr('status_').eq(status)
        filter_expression = status_filter if filter_expression is None else filter_expression & status_filter

    return Response(
        status_code=http200,
        body={'orders': [Order(**record)._to_ui() for record in get_all_orders(filter_expression)]}
    )
