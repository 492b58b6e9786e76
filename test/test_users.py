from chalicelib.constants import keys_structure
from chalicelib.constants.status_codes import http200, http400, http403, http409
from utils.fixtures import id_customer, id_unregistered
from utils.request_utils import make_request


def test_sign_up_creates_profile_with_normalized_phone(chalice_client, registered_users, tokens):
    response = make_request(chalice_client, endpoint='/users', method='POST', token=tokens['unregistered'],
                            json_body={'full_name': 'Wanjiku Kamau', 'phone': '0712 345 678', 'role': 'driver'})
    assert response.status_code == http200
    assert response.json_body['id'] == id_unregistered

    stored = registered_users.get(keys_structure.users_pk, id_unregistered)
    assert stored['phone'] == '254712345678'
    assert stored['role'] == 'driver'
    assert stored['kyc_status'] == 'pending'


def test_sign_up_can_not_choose_admin(chalice_client, registered_users, tokens):
    response = make_request(chalice_client, endpoint='/users', method='POST', token=tokens['unregistered'],
                            json_body={'full_name': 'Mallory', 'role': 'admin'})
    assert response.status_code == http403
    assert registered_users.get(keys_structure.users_pk, id_unregistered) is None


def test_sign_up_twice_is_rejected(chalice_client, registered_users, tokens):
    response = make_request(chalice_client, endpoint='/users', method='POST', token=tokens['customer'],
                            json_body={'full_name': 'Again'})
    assert response.status_code == http409


def test_sign_up_rejects_invalid_phone(chalice_client, registered_users, tokens):
    response = make_request(chalice_client, endpoint='/users', method='POST', token=tokens['unregistered'],
                            json_body={'phone': '12'})
    assert response.status_code == http400
    assert response.json_body['exception'] == 'InvalidPhoneNumber'


def test_get_and_update_own_profile(chalice_client, registered_users, tokens):
    response = make_request(chalice_client, endpoint='/users', method='PUT', token=tokens['customer'],
                            json_body={'full_name': 'Otieno Odhiambo', 'phone': '0798765432', 'role': 'admin'})
    assert response.status_code == http200

    response = make_request(chalice_client, endpoint='/users', token=tokens['customer'])
    assert response.status_code == http200
    profile = response.json_body
    assert profile['id'] == id_customer
    assert profile['full_name'] == 'Otieno Odhiambo'
    assert profile['phone'] == '254798765432'
    assert profile['role'] == 'customer'


def test_admin_updates_kyc(chalice_client, registered_users, tokens):
    response = make_request(chalice_client, endpoint=f'/users/{id_customer}/kyc', method='PUT',
                            json_body={'kyc_status': 'rejected'}, token=tokens['admin'])
    assert response.status_code == http200
    assert registered_users.get(keys_structure.users_pk, id_customer)['kyc_status'] == 'rejected'

    response = make_request(chalice_client, endpoint=f'/users/{id_customer}/kyc', method='PUT',
                            json_body={'kyc_status': 'maybe'}, token=tokens['admin'])
    assert response.status_code == http400


def test_admin_lists_users_by_role(chalice_client, registered_users, tokens):
    response = make_request(chalice_client, endpoint='/users/all', query='role=driver', token=tokens['admin'])
    assert response.status_code == http200
    assert {user['role'] for user in response.json_body['users']} == {'driver'}
    assert len(response.json_body['users']) == 2
