from decimal import Decimal

import pytest

from chalicelib import orders
from chalicelib.constants import keys_structure
from chalicelib.constants.status_codes import http200, http400, http403, http404, http409
from chalicelib.payments import PaymentResult
from utils.fixtures import id_customer, id_driver, id_seller, seed_restaurant, seed_menu_item, seed_product
from utils.request_utils import make_request


def create_food_order(chalice_client, token, items=None):
    return make_request(chalice_client, endpoint='/orders', method='POST', token=token, json_body={
        'order_type': 'food',
        'restaurant_id': 'rest-1',
        'items': items or [{'menu_item_id': 'item-1', 'quantity': 2}],
        'delivery_address': 'Kerugoya, Kutus road'
    })


def stored_order(table, order_id):
    return table.get(keys_structure.orders_pk, keys_structure.orders_sk.format(order_id=order_id))


def test_food_order_total_includes_restaurant_delivery_fee(chalice_client, registered_users, tokens):
    seed_restaurant(registered_users, 'rest-1', delivery_fee=Decimal('100.00'))
    seed_menu_item(registered_users, 'item-1', price=Decimal('250.00'))

    response = create_food_order(chalice_client, tokens['customer'])
    assert response.status_code == http200
    assert response.json_body['status'] == 'pending'
    assert response.json_body['items'][0]['name'] == 'Nyama Choma'

    order = stored_order(registered_users, response.json_body['id'])
    assert order['customer_id'] == id_customer
    assert order['seller_id'] == id_seller
    assert order['delivery_fee'] == Decimal('100.00')
    assert order['total_amount'] == Decimal('600.00')
    assert order['payment_status'] == 'pending'


def test_unavailable_menu_item_can_not_be_ordered(chalice_client, registered_users, tokens):
    seed_restaurant(registered_users, 'rest-1')
    seed_menu_item(registered_users, 'item-1', is_available=False)
    response = create_food_order(chalice_client, tokens['customer'])
    assert response.status_code == http400
    assert response.json_body['exception'] == 'SomeItemsAreNotAvailable'


def test_marketplace_order_uses_default_delivery_fee(chalice_client, registered_users, tokens):
    seed_product(registered_users, 'prod-1', price=Decimal('1200.00'))
    response = make_request(chalice_client, endpoint='/orders', method='POST', token=tokens['customer'], json_body={
        'order_type': 'marketplace',
        'items': [{'product_id': 'prod-1', 'quantity': 1}],
        'delivery_address': 'Kerugoya'
    })
    assert response.status_code == http200
    order = stored_order(registered_users, response.json_body['id'])
    assert order['delivery_fee'] == Decimal('50.00')
    assert order['total_amount'] == Decimal('1250.00')


def test_marketplace_order_from_two_sellers_is_rejected(chalice_client, registered_users, tokens):
    seed_product(registered_users, 'prod-1')
    seed_product(registered_users, 'prod-2', seller_id='another-seller')
    response = make_request(chalice_client, endpoint='/orders', method='POST', token=tokens['customer'], json_body={
        'order_type': 'marketplace',
        'items': [{'product_id': 'prod-1'}, {'product_id': 'prod-2'}],
        'delivery_address': 'Kerugoya'
    })
    assert response.status_code == http400


def test_out_of_stock_product(chalice_client, registered_users, tokens):
    seed_product(registered_users, 'prod-1', stock_quantity=Decimal('1'))
    response = make_request(chalice_client, endpoint='/orders', method='POST', token=tokens['customer'], json_body={
        'order_type': 'marketplace',
        'items': [{'product_id': 'prod-1', 'quantity': 3}],
        'delivery_address': 'Kerugoya'
    })
    assert response.status_code == http400
    assert response.json_body['exception'] == 'SomeItemsAreNotAvailable'


def test_order_lifecycle(chalice_client, registered_users, tokens):
    seed_restaurant(registered_users, 'rest-1')
    seed_menu_item(registered_users, 'item-1')
    order_id = create_food_order(chalice_client, tokens['customer']).json_body['id']
    status_endpoint = f'/orders/{order_id}/status'

    response = make_request(chalice_client, endpoint=status_endpoint, method='PUT', token=tokens['customer'],
                            json_body={'status': 'confirmed'})
    assert response.status_code == http403

    response = make_request(chalice_client, endpoint=status_endpoint, method='PUT', token=tokens['seller'],
                            json_body={'status': 'confirmed'})
    assert response.status_code == http200

    response = make_request(chalice_client, endpoint='/orders', token=tokens['driver'])
    assert [order['id'] for order in response.json_body['orders']] == [order_id]

    response = make_request(chalice_client, endpoint=status_endpoint, method='PUT', token=tokens['driver'],
                            json_body={'status': 'shipped'})
    assert response.status_code == http200
    assert response.json_body['driver_id'] == id_driver

    response = make_request(chalice_client, endpoint=status_endpoint, method='PUT', token=tokens['other_driver'],
                            json_body={'status': 'delivered'})
    assert response.status_code == http403

    response = make_request(chalice_client, endpoint=status_endpoint, method='PUT', token=tokens['driver'],
                            json_body={'status': 'delivered'})
    assert response.status_code == http200
    assert stored_order(registered_users, order_id)['status_'] == 'delivered'

    response = make_request(chalice_client, endpoint=status_endpoint, method='PUT', token=tokens['admin'],
                            json_body={'status': 'cancelled'})
    assert response.status_code == http409
    assert response.json_body['exception'] == 'InvalidStatusTransition'


def test_orders_are_visible_to_parties_only(chalice_client, registered_users, tokens):
    seed_restaurant(registered_users, 'rest-1')
    seed_menu_item(registered_users, 'item-1')
    order_id = create_food_order(chalice_client, tokens['customer']).json_body['id']

    for role in ('customer', 'seller', 'admin'):
        response = make_request(chalice_client, endpoint=f'/orders/{order_id}', token=tokens[role])
        assert response.status_code == http200

    response = make_request(chalice_client, endpoint=f'/orders/{order_id}', token=tokens['property_seller'])
    assert response.status_code == http404

    response = make_request(chalice_client, endpoint='/orders', token=tokens['seller'])
    assert len(response.json_body['orders']) == 1
    response = make_request(chalice_client, endpoint='/orders', query='status=delivered', token=tokens['seller'])
    assert response.json_body['orders'] == []


def test_pay_order_sends_stk_push_to_profile_phone(chalice_client, registered_users, tokens, monkeypatch):
    seed_restaurant(registered_users, 'rest-1')
    seed_menu_item(registered_users, 'item-1')
    order_id = create_food_order(chalice_client, tokens['customer']).json_body['id']
    calls = []

    def fake_pay_order(phone, amount, order_id_):
        calls.append((phone, amount, order_id_))
        return PaymentResult(True, data={'ResponseCode': '0'}, notice={'title': 'Payment Request Sent'})

    monkeypatch.setattr(orders, 'pay_order', fake_pay_order)
    response = make_request(chalice_client, endpoint=f'/orders/{order_id}/pay', method='POST',
                            token=tokens['customer'])
    assert response.status_code == http200
    assert response.json_body['success'] is True
    assert calls == [('254712345678', Decimal('600.00'), order_id)]


def test_paid_order_can_not_be_paid_again(chalice_client, registered_users, tokens):
    seed_restaurant(registered_users, 'rest-1')
    seed_menu_item(registered_users, 'item-1')
    order_id = create_food_order(chalice_client, tokens['customer']).json_body['id']
    registered_users.update_item(
        Key={'partkey': keys_structure.orders_pk, 'sortkey': order_id},
        UpdateExpression='SET #ps = :ps',
        ExpressionAttributeNames={'#ps': 'payment_status'},
        ExpressionAttributeValues={':ps': 'completed'}
    )
    response = make_request(chalice_client, endpoint=f'/orders/{order_id}/pay', method='POST',
                            token=tokens['customer'], json_body={'phone': '0712345678'})
    assert response.status_code == http400


def test_cancelled_order_can_not_be_paid(chalice_client, registered_users, tokens, monkeypatch):
    seed_restaurant(registered_users, 'rest-1')
    seed_menu_item(registered_users, 'item-1')
    order_id = create_food_order(chalice_client, tokens['customer']).json_body['id']
    calls = []
    monkeypatch.setattr(orders, 'pay_order', lambda *args: calls.append(args))

    response = make_request(chalice_client, endpoint=f'/orders/{order_id}/status', method='PUT',
                            token=tokens['customer'], json_body={'status': 'cancelled'})
    assert response.status_code == http200

    response = make_request(chalice_client, endpoint=f'/orders/{order_id}/pay', method='POST',
                            token=tokens['customer'])
    assert response.status_code == http400
    assert response.json_body['exception'] == 'ValidationException'
    assert calls == []


def test_delivered_order_can_not_be_paid_with_stk_push(chalice_client, registered_users, tokens, monkeypatch):
    seed_restaurant(registered_users, 'rest-1')
    seed_menu_item(registered_users, 'item-1')
    order_id = create_food_order(chalice_client, tokens['customer']).json_body['id']
    registered_users.update_item(
        Key={'partkey': keys_structure.orders_pk, 'sortkey': order_id},
        UpdateExpression='SET #st = :st',
        ExpressionAttributeNames={'#st': 'status_'},
        ExpressionAttributeValues={':st': 'delivered'}
    )
    monkeypatch.setattr(orders, 'pay_order', lambda *args: pytest.fail('STK push must not be sent'))
    response = make_request(chalice_client, endpoint=f'/orders/{order_id}/pay', method='POST',
                            token=tokens['customer'])
    assert response.status_code == http400
