from decimal import Decimal

from chalicelib.constants import keys_structure
from chalicelib.constants.status_codes import http200, http400, http403
from utils.fixtures import id_property_seller
from utils.request_utils import make_request

LISTING = {
    'title': 'Two bedroom apartment near Kerugoya stadium',
    'property_type': 'apartment',
    'listing_type': 'rent',
    'price': 18000,
    'bedrooms': 2,
    'bathrooms': 1,
    'location': 'Kerugoya',
    'contact_phone': '0712 000 111'
}


def create_listing(chalice_client, token, **overrides):
    return make_request(chalice_client, endpoint='/properties', method='POST', token=token,
                        json_body={**LISTING, **overrides})


def test_property_seller_lists_property(chalice_client, registered_users, tokens):
    response = create_listing(chalice_client, tokens['property_seller'])
    assert response.status_code == http200
    property_id = response.json_body['id']

    stored = registered_users.get(keys_structure.properties_pk, property_id)
    assert stored['seller_id'] == id_property_seller
    assert stored['contact_phone'] == '254712000111'
    assert stored['price'] == Decimal('18000.00')
    assert stored['bedrooms'] == Decimal('2')

    response = make_request(chalice_client, endpoint=f'/properties/{property_id}')
    assert response.status_code == http200
    assert response.json_body['title'] == LISTING['title']


def test_unknown_property_type_is_rejected(chalice_client, registered_users, tokens):
    response = create_listing(chalice_client, tokens['property_seller'], property_type='castle')
    assert response.status_code == http400


def test_customers_can_not_list_properties(chalice_client, registered_users, tokens):
    response = create_listing(chalice_client, tokens['customer'])
    assert response.status_code == http403


def test_filter_and_deactivate_properties(chalice_client, registered_users, tokens):
    rent_id = create_listing(chalice_client, tokens['property_seller']).json_body['id']
    sale_id = create_listing(chalice_client, tokens['property_seller'], listing_type='sale',
                             property_type='land').json_body['id']

    response = make_request(chalice_client, endpoint='/properties', query='listing_type=sale')
    assert [item['id'] for item in response.json_body] == [sale_id]

    response = make_request(chalice_client, endpoint=f'/properties/{rent_id}', method='DELETE',
                            token=tokens['property_seller'])
    assert response.status_code == http200

    response = make_request(chalice_client, endpoint='/properties')
    assert [item['id'] for item in response.json_body] == [sale_id]
