from decimal import Decimal

from chalicelib.constants import keys_structure
from chalicelib.constants.status_codes import http200, http400, http403, http409
from utils.fixtures import id_driver, id_other_driver, id_seller, seed_driver
from utils.request_utils import make_request

DRIVER_APPLICATION = {
    'vehicle_type': 'motorbike',
    'vehicle_model': 'Boxer 150',
    'vehicle_number': 'KMDA 456B',
    'license_number': 'DL-778899',
    'is_verified': True
}


def test_driver_onboarding_starts_unverified(chalice_client, registered_users, tokens):
    response = make_request(chalice_client, endpoint='/drivers', method='POST', json_body=DRIVER_APPLICATION,
                            token=tokens['driver'])
    assert response.status_code == http200

    stored = registered_users.get(keys_structure.drivers_pk, id_driver)
    assert stored['is_verified'] is False
    assert stored['is_online'] is False
    assert stored['user_id'] == id_driver

    response = make_request(chalice_client, endpoint='/drivers', method='POST', json_body=DRIVER_APPLICATION,
                            token=tokens['driver'])
    assert response.status_code == http409


def test_only_drivers_can_onboard(chalice_client, registered_users, tokens):
    response = make_request(chalice_client, endpoint='/drivers', method='POST', json_body=DRIVER_APPLICATION,
                            token=tokens['customer'])
    assert response.status_code == http403


def test_driver_goes_online_and_shares_location(chalice_client, registered_users, tokens):
    seed_driver(registered_users, is_online=False)

    response = make_request(chalice_client, endpoint='/drivers/me/online', method='PUT',
                            json_body={'is_online': True}, token=tokens['driver'])
    assert response.status_code == http200
    assert response.json_body['is_online'] is True

    response = make_request(chalice_client, endpoint='/drivers/me/location', method='PUT',
                            json_body={'latitude': -0.4989, 'longitude': 37.2803}, token=tokens['driver'])
    assert response.status_code == http200

    stored = registered_users.get(keys_structure.drivers_pk, id_driver)
    assert stored['is_online'] is True
    assert stored['current_latitude'] == Decimal('-0.498900')
    assert stored['location_updated_at']


def test_location_outside_the_globe_is_rejected(chalice_client, registered_users, tokens):
    seed_driver(registered_users)
    response = make_request(chalice_client, endpoint='/drivers/me/location', method='PUT',
                            json_body={'latitude': 120, 'longitude': 37.2}, token=tokens['driver'])
    assert response.status_code == http400


def test_online_drivers_are_verified_only(chalice_client, registered_users, tokens):
    seed_driver(registered_users, id_driver, is_verified=True, is_online=True)
    seed_driver(registered_users, id_other_driver, is_verified=False, is_online=True)

    response = make_request(chalice_client, endpoint='/drivers/online', token=tokens['customer'])
    assert response.status_code == http200
    assert [driver['id'] for driver in response.json_body['drivers']] == [id_driver]


def test_admin_verifies_driver(chalice_client, registered_users, tokens):
    seed_driver(registered_users, id_other_driver, is_verified=False)
    response = make_request(chalice_client, endpoint=f'/drivers/{id_other_driver}/verification', method='PUT',
                            json_body={'is_verified': True}, token=tokens['admin'])
    assert response.status_code == http200
    assert registered_users.get(keys_structure.drivers_pk, id_other_driver)['is_verified'] is True

    response = make_request(chalice_client, endpoint='/drivers', token=tokens['admin'])
    assert response.status_code == http200
    assert len(response.json_body['drivers']) == 1


def test_seller_onboarding_and_verification(chalice_client, registered_users, tokens):
    response = make_request(chalice_client, endpoint='/sellers', method='POST', token=tokens['seller'],
                            json_body={'shop_name': 'Mama Mboga', 'shop_description': 'Vegetables'})
    assert response.status_code == http200
    assert registered_users.get(keys_structure.sellers_pk, id_seller)['is_verified'] is False

    response = make_request(chalice_client, endpoint=f'/sellers/{id_seller}/verification', method='PUT',
                            json_body={'is_verified': True}, token=tokens['admin'])
    assert response.status_code == http200

    response = make_request(chalice_client, endpoint='/sellers/me', token=tokens['seller'])
    assert response.json_body['shop_name'] == 'Mama Mboga'
    assert response.json_body['is_verified'] is True
