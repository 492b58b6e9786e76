from decimal import Decimal

from chalicelib.constants import keys_structure
from chalicelib.constants.status_codes import http200, http400, http403
from chalicelib.products import Product
from utils.fixtures import id_seller, seed_seller, seed_product
from utils.request_utils import make_request


def test_create_product(chalice_client, registered_users, tokens):
    seed_seller(registered_users)
    response = make_request(chalice_client, endpoint='/products', method='POST', token=tokens['seller'],
                            json_body={'name': 'Sisal Bag', 'price': 850, 'stock_quantity': 12, 'category': 'crafts'})
    assert response.status_code == http200
    product_id = response.json_body['id']

    stored = registered_users.get(keys_structure.products_pk, product_id)
    assert stored['name_'] == 'Sisal Bag'
    assert stored['seller_id'] == id_seller
    assert stored['price'] == Decimal('850.00')
    assert stored['stock_quantity'] == Decimal('12')


def test_create_product_rejects_negative_stock(chalice_client, registered_users, tokens):
    seed_seller(registered_users)
    response = make_request(chalice_client, endpoint='/products', method='POST', token=tokens['seller'],
                            json_body={'name': 'Sisal Bag', 'price': 850, 'stock_quantity': -3})
    assert response.status_code == http400


def test_products_list_hides_inactive(chalice_client, registered_users):
    seed_product(registered_users, 'prod-1')
    seed_product(registered_users, 'prod-2', is_active=False)
    seed_product(registered_users, 'prod-3', seller_id='another-seller')

    response = make_request(chalice_client, endpoint='/products')
    assert response.status_code == http200
    assert [item['id'] for item in response.json_body] == ['prod-1', 'prod-3']
    assert response.json_body[0]['name'] == 'Kiondo Basket'

    response = make_request(chalice_client, endpoint='/products', query=f'seller_id={id_seller}')
    assert [item['id'] for item in response.json_body] == ['prod-1']


def test_foreign_product_can_not_be_changed(chalice_client, registered_users, tokens):
    seed_product(registered_users, 'prod-1', seller_id='another-seller')
    response = make_request(chalice_client, endpoint='/products/prod-1', method='PUT', token=tokens['seller'],
                            json_body={'price': 1})
    assert response.status_code == http403

    response = make_request(chalice_client, endpoint='/products/prod-1', method='DELETE', token=tokens['admin'])
    assert response.status_code == http200
    assert registered_users.get(keys_structure.products_pk, 'prod-1')['is_active'] is False


def test_is_orderable(registered_users):
    seed_product(registered_users, 'prod-1', stock_quantity=Decimal('2'))
    product = Product.init_get_by_id('prod-1')
    assert product.is_orderable(2)
    assert not product.is_orderable(3)
