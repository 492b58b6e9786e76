import base64
import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import httpx
import pytest
import respx

from chalicelib import mpesa
from chalicelib.constants import keys_structure
from chalicelib.constants.status_codes import http200, http400, http500
from chalicelib.utils import exceptions
from utils.fixtures import id_customer
from utils.request_utils import make_request

SANDBOX_HOST = 'sandbox.safaricom.co.ke'
STK_ACCEPTED = {
    'MerchantRequestID': '29115-34620561-1',
    'CheckoutRequestID': 'ws_CO_191220191020363925',
    'ResponseCode': '0',
    'ResponseDescription': 'Success. Request accepted for processing',
    'CustomerMessage': 'Success. Request accepted for processing'
}


@pytest.fixture
def mpesa_credentials(monkeypatch):
    monkeypatch.setenv('MPESA_CONSUMER_KEY', 'consumer-key')
    monkeypatch.setenv('MPESA_CONSUMER_SECRET', 'consumer-secret')
    monkeypatch.setenv('MPESA_PASSKEY', 'passkey')
    monkeypatch.setenv('MPESA_CALLBACK_URL', 'http://localhost:8000/api/mpesa-webhook')


def mock_gateway(stk_response=None, token_status=200):
    token_route = respx.get(host=SANDBOX_HOST, path='/oauth/v1/generate').mock(
        return_value=httpx.Response(token_status, json={'access_token': 'token-123', 'expires_in': '3599'}
                                    if token_status == 200 else {'errorMessage': 'Invalid credentials'}))
    stk_route = respx.post(host=SANDBOX_HOST, path='/mpesa/stkpush/v1/processrequest').mock(
        return_value=httpx.Response(200, json=stk_response or STK_ACCEPTED))
    return token_route, stk_route


def seed_order(table, order_id='order-1', status='pending'):
    table.put(
        partkey=keys_structure.orders_pk,
        sortkey=keys_structure.orders_sk.format(order_id=order_id),
        record_type='order',
        id_=order_id,
        customer_id=id_customer,
        order_type='food',
        status_=status,
        payment_status='pending',
        total_amount=Decimal('600.00'),
        date_created='2024-01-01T10:00:00',
        date_updated='2024-01-01T10:00:00'
    )


def stk_callback(result_code=0, receipt='NLJ7RT61SV', merchant_request_id='29115-34620561-1'):
    callback = {
        'MerchantRequestID': merchant_request_id,
        'CheckoutRequestID': 'ws_CO_191220191020363925',
        'ResultCode': result_code,
        'ResultDesc': 'The service request is processed successfully.'
    }
    if result_code == 0:
        callback['CallbackMetadata'] = {'Item': [
            {'Name': 'Amount', 'Value': 600},
            {'Name': 'MpesaReceiptNumber', 'Value': receipt},
            {'Name': 'TransactionDate', 'Value': 20191219102115},
            {'Name': 'PhoneNumber', 'Value': 254712345678}
        ]}
    return {'Body': {'stkCallback': callback}}


def test_build_stk_payload():
    settings = {'shortcode': '174379', 'passkey': 'passkey', 'callback_url': 'https://apanda.test/mpesa-webhook'}
    payload = mpesa.build_stk_payload(settings, '0712 345 678', Decimal('599.60'), 'order-1', '20240101120000')
    assert payload['Amount'] == 600
    assert payload['PartyA'] == payload['PhoneNumber'] == '254712345678'
    assert payload['PartyB'] == payload['BusinessShortCode'] == '174379'
    assert payload['TransactionType'] == 'CustomerPayBillOnline'
    assert payload['AccountReference'] == 'order-1'
    assert base64.b64decode(payload['Password']).decode() == '174379passkey20240101120000'


def test_round_amount():
    assert mpesa.round_amount('10.5') == 11
    assert mpesa.round_amount(Decimal('10.49')) == 10
    with pytest.raises(exceptions.ValidationException):
        mpesa.round_amount('ten')


def test_settings_must_be_configured(monkeypatch):
    monkeypatch.delenv('MPESA_CONSUMER_KEY', raising=False)
    with pytest.raises(exceptions.ConfigurationError):
        mpesa.get_mpesa_settings()


@respx.mock
def test_initiate_stk_push_remembers_the_order(gen_table, mpesa_credentials):
    token_route, stk_route = mock_gateway()
    assert mpesa.initiate_stk_push('0712345678', 600, 'order-1') == STK_ACCEPTED

    assert token_route.calls.last.request.headers['Authorization'].startswith('Basic ')
    stk_request = stk_route.calls.last.request
    assert stk_request.headers['Authorization'] == 'Bearer token-123'
    assert json.loads(stk_request.content)['CallBackURL'] == 'http://localhost:8000/api/mpesa-webhook'

    payment_request = gen_table.get(keys_structure.payment_requests_pk, STK_ACCEPTED['MerchantRequestID'])
    assert payment_request['order_id'] == 'order-1'
    assert payment_request['phone'] == '254712345678'


@respx.mock
def test_rejected_credentials_raise_gateway_error(gen_table, mpesa_credentials):
    _, stk_route = mock_gateway(token_status=401)
    with pytest.raises(exceptions.PaymentGatewayError):
        mpesa.initiate_stk_push('0712345678', 600, 'order-1')
    assert not stk_route.called


def test_webhook_requires_all_query_params(chalice_client, gen_table):
    response = make_request(chalice_client, endpoint='/mpesa-webhook', query='phone=0712345678&amount=100')
    assert response.status_code == http400
    assert response.json_body == {'error': 'Missing required parameters: phone, amount, order_id'}


@respx.mock
def test_webhook_returns_gateway_response(chalice_client, gen_table, mpesa_credentials):
    mock_gateway()
    response = make_request(chalice_client, endpoint='/mpesa-webhook',
                            query='phone=0712345678&amount=100&order_id=order-1')
    assert response.status_code == http200
    assert response.json_body['ResponseCode'] == '0'


@respx.mock
def test_webhook_reports_gateway_failure(chalice_client, gen_table, mpesa_credentials):
    mock_gateway(token_status=500)
    response = make_request(chalice_client, endpoint='/mpesa-webhook',
                            query='phone=0712345678&amount=100&order_id=order-1')
    assert response.status_code == http500
    assert 'access token' in response.json_body['error']


def test_successful_callback_marks_order_paid_once(chalice_client, registered_users):
    seed_order(registered_users)
    mpesa.PaymentRequest('29115-34620561-1', order_id='order-1')._create_db_record()

    for _ in range(2):
        response = make_request(chalice_client, endpoint='/mpesa-webhook', method='POST', json_body=stk_callback())
        assert response.status_code == http200
        assert response.json_body == {'success': True}

    order = registered_users.get(keys_structure.orders_pk, 'order-1')
    assert order['status_'] == 'confirmed'
    assert order['payment_status'] == 'completed'

    transactions = registered_users.records(keys_structure.transactions_pk)
    assert len(transactions) == 1
    assert transactions[0]['id_'] == 'NLJ7RT61SV'
    assert transactions[0]['order_id'] == 'order-1'
    assert transactions[0]['user_id'] == id_customer
    assert transactions[0]['amount'] == Decimal('600.00')
    assert transactions[0]['status_'] == 'completed'

    notifications = registered_users.records(keys_structure.notifications_pk.format(user_id=id_customer))
    assert [notification['title'] for notification in notifications] == ['Payment Received']


def test_paid_callback_keeps_later_status(registered_users):
    seed_order(registered_users, status='shipped')
    mpesa.handle_stk_callback(stk_callback(merchant_request_id='order-1'))
    order = registered_users.get(keys_structure.orders_pk, 'order-1')
    assert order['status_'] == 'shipped'
    assert order['payment_status'] == 'completed'


def test_paid_callback_leaves_cancelled_order_for_refund(registered_users):
    seed_order(registered_users, status='cancelled')
    mpesa.handle_stk_callback(stk_callback(merchant_request_id='order-1'))
    order = registered_users.get(keys_structure.orders_pk, 'order-1')
    assert order['status_'] == 'cancelled'
    assert order['payment_status'] == 'pending'
    transactions = registered_users.records(keys_structure.transactions_pk)
    assert [transaction['external_reference'] for transaction in transactions] == ['NLJ7RT61SV']


def test_order_cancelled_during_payment_is_not_marked_paid(registered_users, monkeypatch):
    seed_order(registered_users, status='confirmed')

    def cancel_then_read(partkey, sortkey, **kwargs):
        record = dict(registered_users.get(partkey, sortkey))
        registered_users.get(partkey, sortkey)['status_'] = 'cancelled'
        return record

    monkeypatch.setattr(mpesa.utils_db, 'get_db_item', cancel_then_read)
    mpesa.mark_order_paid('order-1')
    assert registered_users.get(keys_structure.orders_pk, 'order-1')['payment_status'] == 'pending'


def test_stk_timestamp_is_east_africa_time():
    moment = datetime(2024, 1, 1, 21, 30, 5, tzinfo=timezone.utc)
    assert mpesa.stk_timestamp(moment.astimezone(mpesa.EAST_AFRICA_TIME)) == '20240102003005'
    assert mpesa.stk_timestamp(datetime(2024, 1, 1, 12, 0, 0)) == '20240101120000'
    assert mpesa.EAST_AFRICA_TIME.utcoffset(None) == timedelta(hours=3)


def test_failed_callback_changes_nothing(chalice_client, registered_users):
    seed_order(registered_users)
    mpesa.PaymentRequest('29115-34620561-1', order_id='order-1')._create_db_record()
    response = make_request(chalice_client, endpoint='/mpesa-webhook', method='POST',
                            json_body=stk_callback(result_code=1032))
    assert response.status_code == http200
    assert registered_users.get(keys_structure.orders_pk, 'order-1')['payment_status'] == 'pending'
    assert registered_users.records(keys_structure.transactions_pk) == []


def test_malformed_callback(chalice_client, gen_table):
    response = make_request(chalice_client, endpoint='/mpesa-webhook', method='POST', json_body={'Body': {}})
    assert response.status_code == http500
    assert 'STK callback' in response.json_body['error']
