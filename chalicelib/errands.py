from decimal import Decimal
from typing import Tuple, List, Dict
from uuid import uuid4

from boto3.dynamodb.conditions import Key, Attr
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import PAYMENT_PROVIDERS, PROVIDER_MPESA, ROLE_ADMIN
from chalicelib.constants.status_codes import http200
from chalicelib.constants.statuses import ORDER_PENDING, ORDER_STATUS_TRANSITIONS, ERRAND_URGENCY_NORMAL
from chalicelib.pricing import ERRAND_SERVICES, URGENCY_MULTIPLIERS, errand_price, get_errand_service
from chalicelib.utils import auth as utils_auth, app as utils_app, data as utils_data, db as utils_db
from chalicelib.utils.logger import logger
from chalicelib.utils.phone import normalize_phone_number


class ErrandOrder(EntityBase):
    pk = keys_structure.errands_pk
    sk = keys_structure.errands_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'customer_id': lambda x: isinstance(x, str),
        'service_type': lambda x: x in ERRAND_SERVICES,
        'urgency': lambda x: x in URGENCY_MULTIPLIERS,
        'total_amount': lambda x: isinstance(x, Decimal) and x >= 0,
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'pickup_address': lambda x: isinstance(x, str) and len(x) > 0,
        'delivery_address': lambda x: isinstance(x, str) and len(x) > 0,
        'errand_details': lambda x: isinstance(x, str) and len(x) > 0,
        'payment_method': lambda x: x in PAYMENT_PROVIDERS,
        'status_': lambda x: x in ORDER_STATUS_TRANSITIONS,
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'contact_phone': lambda x: isinstance(x, str),
        'preferred_time': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.customer_id: str = kwargs.get('customer_id')
        self.service_type: str = kwargs.get('service_type')
        self.urgency: str = kwargs.get('urgency', ERRAND_URGENCY_NORMAL)
        self.pickup_address: str = kwargs.get('pickup_address')
        self.delivery_address: str = kwargs.get('delivery_address')
        self.errand_details: str = kwargs.get('errand_details')
        self.contact_phone: str = kwargs.get('contact_phone')
        self.preferred_time: str = kwargs.get('preferred_time')
        self.total_amount: Decimal = utils_data.to_decimal(kwargs.get('total_amount'))
        self.payment_method: str = kwargs.get('payment_method', PROVIDER_MPESA)
        self.status_: str = kwargs.get('status_', ORDER_PENDING)
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or now_iso()
        self.record_type = 'errand_order'

    @classmethod
    @utils_auth.authenticate_class
    def init_request_create(cls, request):
        logger.info("init_request_create ::: started")
        utils_auth.require_registered(request.auth_result)
        request_body = utils_data.parse_raw_body(request)
        for field in ('id', 'id_', 'customer_id', 'total_amount', 'status', 'status_'):
            request_body.pop(field, None)
        service = get_errand_service(request_body.get('service_type'))
        urgency = request_body.pop('urgency', ERRAND_URGENCY_NORMAL)
        if request_body.get('contact_phone'):
            request_body['contact_phone'] = normalize_phone_number(request_body['contact_phone'])
        return cls(
            id_=str(uuid4()),
            customer_id=request.auth_result['user_id'],
            urgency=urgency,
            total_amount=errand_price(service['base_price'], urgency),
            **request_body
        )

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_create(self) -> Response:
        self._create_db_record()
        return Response(status_code=http200, body={
            'message': f'Errand request submitted, total KES {self.total_amount}', **self._to_ui()})

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(errand_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'customer_id': self.customer_id,
            'service_type': self.service_type,
            'urgency': self.urgency,
            'pickup_address': self.pickup_address,
            'delivery_address': self.delivery_address,
            'errand_details': self.errand_details,
            'contact_phone': self.contact_phone,
            'preferred_time': self.preferred_time,
            'total_amount': self.total_amount,
            'payment_method': self.payment_method,
            'status_': self.status_,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }


@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_errands(request) -> Response:
    if request.auth_result['role'] == ROLE_ADMIN:
        filter_expression = None
    else:
        filter_expression = Attr('customer_id').eq(request.auth_result['user_id'])
    records: List[Dict] = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.errands_pk), filter_expression=filter_expression)
    records.sort(key=lambda record: record.get('date_created', ''), reverse=True)
    return Response(status_code=http200, body={'errands': [ErrandOrder(**record)._to_ui() for record in records]})
