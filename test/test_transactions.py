from decimal import Decimal

from chalicelib.constants import keys_structure
from chalicelib.constants.status_codes import http200, http403
from chalicelib.transactions import Transaction, transaction_stats
from utils.fixtures import id_customer, id_seller
from utils.request_utils import make_request


def seed_transaction(table, transaction_id, amount, status, user_id=id_customer, date_created='2024-01-01T10:00:00'):
    table.put(
        partkey=keys_structure.transactions_pk,
        sortkey=keys_structure.transactions_sk.format(transaction_id=transaction_id),
        record_type='transaction',
        id_=transaction_id,
        user_id=user_id,
        amount=Decimal(amount),
        provider='mpesa',
        status_=status,
        date_created=date_created,
        date_updated=date_created
    )


def test_transaction_stats():
    stats = transaction_stats([
        {'amount': Decimal('600'), 'status_': 'completed'},
        {'amount': Decimal('400'), 'status_': 'completed'},
        {'amount': Decimal('250'), 'status_': 'pending'},
        {'amount': Decimal('100'), 'status_': 'failed'}
    ])
    assert stats == {
        'total_earnings': Decimal('1000.00'),
        'pending_amount': Decimal('250.00'),
        'completed_transactions': 2,
        'success_rate': Decimal('50.00')
    }


def test_transaction_stats_without_transactions():
    assert transaction_stats([])['success_rate'] == Decimal('0')


def test_create_once(gen_table):
    assert Transaction('NLJ7RT61SV', amount=600, provider='mpesa', status_='completed').create_once() is True
    assert Transaction('NLJ7RT61SV', amount=700, provider='mpesa', status_='completed').create_once() is False
    assert gen_table.get(keys_structure.transactions_pk, 'NLJ7RT61SV')['amount'] == Decimal('600.00')


def test_own_transactions_newest_first(chalice_client, registered_users, tokens):
    seed_transaction(registered_users, 'tx-1', '600', 'completed', date_created='2024-01-01T10:00:00')
    seed_transaction(registered_users, 'tx-2', '250', 'pending', date_created='2024-01-02T10:00:00')
    seed_transaction(registered_users, 'tx-3', '999', 'completed', user_id=id_seller)

    response = make_request(chalice_client, endpoint='/transactions', token=tokens['customer'])
    assert response.status_code == http200
    assert [item['id'] for item in response.json_body['transactions']] == ['tx-2', 'tx-1']

    response = make_request(chalice_client, endpoint='/transactions/stats', token=tokens['customer'])
    assert response.json_body['completed_transactions'] == 1
    assert response.json_body['total_earnings'] == 600
    assert response.json_body['pending_amount'] == 250


def test_all_transactions_for_admin_only(chalice_client, registered_users, tokens):
    seed_transaction(registered_users, 'tx-1', '600', 'completed')
    seed_transaction(registered_users, 'tx-3', '999', 'completed', user_id=id_seller)

    response = make_request(chalice_client, endpoint='/transactions/all', token=tokens['admin'])
    assert response.status_code == http200
    assert len(response.json_body['transactions']) == 2
    assert response.json_body['stats']['success_rate'] == 100

    response = make_request(chalice_client, endpoint='/transactions/all', token=tokens['customer'])
    assert response.status_code == http403
