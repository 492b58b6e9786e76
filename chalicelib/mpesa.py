import base64
import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional, Tuple

import httpx
from boto3.dynamodb.conditions import Attr
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import MPESA_DEFAULT_BASE_URL, MPESA_DEFAULT_SHORTCODE, \
    MPESA_TRANSACTION_TYPE, MPESA_TRANSACTION_DESC, MPESA_SUCCESS_RESULT_CODE, PROVIDER_MPESA
from chalicelib.constants.status_codes import http200, http400, http500
from chalicelib.constants.statuses import ORDER_PENDING, ORDER_CONFIRMED, ORDER_CANCELLED, ORDER_STATUS_TRANSITIONS, \
    PAYMENT_COMPLETED, TRANSACTION_COMPLETED
from chalicelib.notifications import create_notification
from chalicelib.transactions import Transaction
from chalicelib.utils import data as utils_data, db as utils_db, exceptions, http as utils_http, \
    transitions as utils_transitions
from chalicelib.utils.logger import logger, log_exception
from chalicelib.utils.phone import format_phone_number

OAUTH_PATH = '/oauth/v1/generate?grant_type=client_credentials'
STK_PUSH_PATH = '/mpesa/stkpush/v1/processrequest'
TIMESTAMP_FORMAT = '%Y%m%d%H%M%S'
REQUIRED_QUERY_PARAMS = ('phone', 'amount', 'order_id')
# Daraja validates the password timestamp against East Africa Time
EAST_AFRICA_TIME = timezone(timedelta(hours=3), 'EAT')


def get_mpesa_settings() -> Dict:
    settings = {
        'base_url': os.environ.get('MPESA_BASE_URL', MPESA_DEFAULT_BASE_URL).rstrip('/'),
        'consumer_key': os.environ.get('MPESA_CONSUMER_KEY'),
        'consumer_secret': os.environ.get('MPESA_CONSUMER_SECRET'),
        'passkey': os.environ.get('MPESA_PASSKEY'),
        'shortcode': os.environ.get('MPESA_SHORTCODE', MPESA_DEFAULT_SHORTCODE),
        'callback_url': os.environ.get('MPESA_CALLBACK_URL')
    }
    missing = [name for name, value in settings.items() if not value]
    if missing:
        raise exceptions.ConfigurationError(f'M-Pesa settings are not configured: {missing}')
    return settings


def stk_timestamp(moment: Optional[datetime] = None) -> str:
    return (moment or datetime.now(EAST_AFRICA_TIME)).strftime(TIMESTAMP_FORMAT)


def stk_password(shortcode: str, passkey: str, timestamp: str) -> str:
    return base64.b64encode(f'{shortcode}{passkey}{timestamp}'.encode()).decode()


def round_amount(amount) -> int:
    """ The gateway only accepts whole shillings """
    try:
        return int(Decimal(str(amount)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
    except ArithmeticError:
        raise exceptions.ValidationException(f'amount={amount!r} is not a number')


def build_stk_payload(settings: Dict, phone: str, amount, order_id: str, timestamp: str) -> Dict:
    phone = format_phone_number(phone)
    return {
        'BusinessShortCode': settings['shortcode'],
        'Password': stk_password(settings['shortcode'], settings['passkey'], timestamp),
        'Timestamp': timestamp,
        'TransactionType': MPESA_TRANSACTION_TYPE,
        'Amount': round_amount(amount),
        'PartyA': phone,
        'PartyB': settings['shortcode'],
        'PhoneNumber': phone,
        'CallBackURL': settings['callback_url'],
        'AccountReference': order_id,
        'TransactionDesc': MPESA_TRANSACTION_DESC
    }


def get_access_token(client: httpx.Client, settings: Dict) -> str:
    response = client.get(
        f"{settings['base_url']}{OAUTH_PATH}",
        auth=(settings['consumer_key'], settings['consumer_secret'])
    )
    body = utils_http.response_json(response)
    if response.is_error or not body.get('access_token'):
        raise exceptions.PaymentGatewayError(
            f'M-Pesa access token request failed with status {response.status_code}: {body}')
    return body['access_token']


class PaymentRequest(EntityBase):
    """
    Remembers which order an STK push was sent for,
    the callback only carries the MerchantRequestID
    """
    pk = keys_structure.payment_requests_pk
    sk = keys_structure.payment_requests_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'order_id': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'checkout_request_id': lambda x: isinstance(x, str),
        'phone': lambda x: isinstance(x, str),
        'amount': lambda x: isinstance(x, Decimal)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.order_id: str = kwargs.get('order_id')
        self.checkout_request_id: str = kwargs.get('checkout_request_id')
        self.phone: str = kwargs.get('phone')
        self.amount: Decimal = utils_data.to_decimal(kwargs.get('amount'))
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.record_type = 'payment_request'

    @classmethod
    def resolve_order_id(cls, merchant_request_id: str) -> str:
        try:
            c = cls(merchant_request_id)
            c.__init__(**c._get_db_item())
            return c.order_id
        except exceptions.RecordNotFound:
            logger.warning(f'resolve_order_id ::: no payment request for {merchant_request_id=}, '
                           f'using it as the order id')
            return merchant_request_id

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(merchant_request_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'order_id': self.order_id,
            'checkout_request_id': self.checkout_request_id,
            'phone': self.phone,
            'amount': self.amount,
            'date_created': self.date_created
        }


def initiate_stk_push(phone: str, amount, order_id: str) -> Dict:
    """
    Sends the STK push prompt to the customer's phone.
    Returns the gateway JSON as is, ResponseCode "0" means the prompt was sent
    """
    settings = get_mpesa_settings()
    timestamp = stk_timestamp()
    payload = build_stk_payload(settings, phone, amount, order_id, timestamp)
    with utils_http.get_http_client() as client:
        access_token = get_access_token(client, settings)
        response = client.post(
            f"{settings['base_url']}{STK_PUSH_PATH}",
            json=payload,
            headers={'Authorization': f'Bearer {access_token}'}
        )
    stk_data = utils_http.response_json(response)
    logger.info(f'initiate_stk_push ::: {order_id=} status={response.status_code} response={stk_data}')
    if stk_data.get('MerchantRequestID'):
        PaymentRequest(
            stk_data['MerchantRequestID'],
            order_id=order_id,
            checkout_request_id=stk_data.get('CheckoutRequestID'),
            phone=payload['PhoneNumber'],
            amount=payload['Amount']
        )._create_db_record()
    return stk_data


def callback_metadata(stk_callback: Dict) -> Dict:
    items = (stk_callback.get('CallbackMetadata') or {}).get('Item') or []
    return {item.get('Name'): item.get('Value') for item in items if item.get('Name')}


def mark_order_paid(order_id: str) -> Optional[Dict]:
    """
    payment_status -> completed, a pending order is confirmed.
    A cancelled order is left as it is, the payment still lands in transactions for a refund.
    Returns the stored order, None if the order does not exist
    """
    key = {
        'partkey': keys_structure.orders_pk,
        'sortkey': keys_structure.orders_sk.format(order_id=order_id)
    }
    try:
        order_record = utils_db.get_db_item(**key)
    except exceptions.RecordNotFound:
        logger.warning(f'mark_order_paid ::: order {order_id} does not exist')
        return None
    if order_record.get('status_') == ORDER_CANCELLED:
        logger.warning(f'mark_order_paid ::: order {order_id} is cancelled, payment needs a refund')
        return order_record
    if order_record.get('status_') == ORDER_PENDING:
        try:
            utils_transitions.write_status(
                key, ORDER_STATUS_TRANSITIONS, ORDER_PENDING, ORDER_CONFIRMED, 'order',
                extra_fields={'payment_status': PAYMENT_COMPLETED}
            )
            return order_record
        except exceptions.ConcurrentModification:
            logger.warning(f'mark_order_paid ::: order {order_id} status changed, only marking it paid')
    try:
        utils_db.update_db_record(
            key=key,
            update_body={'payment_status': PAYMENT_COMPLETED, 'date_updated': now_iso()},
            allowed_attrs_to_update=['payment_status', 'date_updated'],
            allowed_attrs_to_delete=[],
            condition_expression=Attr('status_').ne(ORDER_CANCELLED)
        )
    except exceptions.ConcurrentModification:
        logger.warning(f'mark_order_paid ::: order {order_id} was cancelled meanwhile, payment needs a refund')
    return order_record


def handle_stk_callback(body: Dict) -> None:
    try:
        stk_callback = body['Body']['stkCallback']
        result_code = int(stk_callback['ResultCode'])
        merchant_request_id = str(stk_callback['MerchantRequestID'])
    except (KeyError, TypeError, ValueError) as error:
        raise exceptions.ValidationException(f'Callback body is not an STK callback: {error}')

    if result_code != MPESA_SUCCESS_RESULT_CODE:
        logger.warning(f"handle_stk_callback ::: payment failed {result_code=} "
                       f"description={stk_callback.get('ResultDesc')}")
        return

    metadata = callback_metadata(stk_callback)
    order_id = PaymentRequest.resolve_order_id(merchant_request_id)
    order_record = mark_order_paid(order_id)
    receipt = metadata.get('MpesaReceiptNumber') or stk_callback.get('CheckoutRequestID') or merchant_request_id
    created = Transaction(
        str(receipt),
        user_id=(order_record or {}).get('customer_id'),
        order_id=order_id,
        amount=metadata.get('Amount') or (order_record or {}).get('total_amount'),
        provider=PROVIDER_MPESA,
        status_=TRANSACTION_COMPLETED,
        external_reference=str(receipt),
        metadata=stk_callback
    ).create_once()
    logger.info(f'handle_stk_callback ::: {order_id=} {receipt=} recorded={created}')
    if created and order_record and order_record.get('customer_id'):
        create_notification(
            order_record['customer_id'], 'Payment Received',
            f'Payment for order #{order_id[:8]} was received, M-Pesa receipt {receipt}', type_='payment'
        )


def endpoint_initiate_payment(request) -> Response:
    query_params = request.query_params or {}
    if any(not query_params.get(param) for param in REQUIRED_QUERY_PARAMS):
        return Response(status_code=http400,
                        body={'error': 'Missing required parameters: phone, amount, order_id'})
    try:
        stk_data = initiate_stk_push(query_params['phone'], query_params['amount'], query_params['order_id'])
    except Exception as error:
        log_exception(error, status_code=http500, msg='endpoint_initiate_payment ::: STK push failed')
        return Response(status_code=http500, body={'error': str(error)})
    return Response(status_code=http200, body=stk_data)


def endpoint_payment_callback(request) -> Response:
    try:
        handle_stk_callback(utils_data.parse_raw_body(request))
    except Exception as error:
        log_exception(error, status_code=http500, msg='endpoint_payment_callback ::: callback failed')
        return Response(status_code=http500, body={'error': str(error)})
    return Response(status_code=http200, body={'success': True})
