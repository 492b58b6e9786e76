from decimal import Decimal
from typing import Tuple, List, Dict

from boto3.dynamodb.conditions import Attr, Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import PAYMENT_PROVIDERS, ROLE_ADMIN, TRANSACTIONS_PAGE_SIZE
from chalicelib.constants.status_codes import http200
from chalicelib.constants.statuses import TRANSACTION_STATUSES, TRANSACTION_PENDING, TRANSACTION_COMPLETED
from chalicelib.utils import auth as utils_auth, app as utils_app, data as utils_data, db as utils_db, exceptions
from chalicelib.utils.logger import logger


class Transaction(EntityBase):
    """
    Money movement of a user. Payment gateway transactions are keyed by the
    gateway receipt, so the same receipt can never be recorded twice
    """
    pk = keys_structure.transactions_pk
    sk = keys_structure.transactions_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'amount': lambda x: isinstance(x, Decimal) and x >= 0,
        'provider': lambda x: x in PAYMENT_PROVIDERS,
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'status_': lambda x: x in TRANSACTION_STATUSES,
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'user_id': lambda x: isinstance(x, str),
        'order_id': lambda x: isinstance(x, str),
        'ride_id': lambda x: isinstance(x, str),
        'external_reference': lambda x: isinstance(x, str),
        'reference': lambda x: isinstance(x, str),
        'metadata': lambda x: isinstance(x, dict)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.user_id: str = kwargs.get('user_id')
        self.order_id: str = kwargs.get('order_id')
        self.ride_id: str = kwargs.get('ride_id')
        self.amount: Decimal = utils_data.to_decimal(kwargs.get('amount'))
        self.provider: str = kwargs.get('provider')
        self.status_: str = kwargs.get('status_', TRANSACTION_PENDING)
        self.external_reference: str = kwargs.get('external_reference')
        self.reference: str = kwargs.get('reference')
        self.metadata: dict = kwargs.get('metadata')
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or now_iso()
        self.record_type = 'transaction'

    def create_once(self) -> bool:
        """ False if a transaction with the same id is already recorded """
        try:
            self._create_db_record_if_absent()
        except exceptions.RecordAlreadyExists:
            logger.warning(f'create_once ::: transaction {self.id_} is already recorded, skipping')
            return False
        return True

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(transaction_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'user_id': self.user_id,
            'order_id': self.order_id,
            'ride_id': self.ride_id,
            'amount': self.amount,
            'provider': self.provider,
            'status_': self.status_,
            'external_reference': self.external_reference,
            'reference': self.reference,
            'metadata': self.metadata,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }


def get_user_transactions(user_id, limit=TRANSACTIONS_PAGE_SIZE) -> List[Dict]:
    records = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.transactions_pk),
        filter_expression=Attr('user_id').eq(user_id)
    )
    records.sort(key=lambda record: record.get('date_created', ''), reverse=True)
    return records[:limit]


def get_all_transactions() -> List[Dict]:
    records = utils_db.query_items_paged(Key('partkey').eq(keys_structure.transactions_pk))
    records.sort(key=lambda record: record.get('date_created', ''), reverse=True)
    return records


def transaction_stats(records: List[Dict]) -> Dict:
    """
    total_earnings - sum of completed, pending_amount - sum of pending,
    success_rate - share of completed transactions in percent
    """
    completed = [record for record in records if record.get('status_') == TRANSACTION_COMPLETED]
    pending = [record for record in records if record.get('status_') == TRANSACTION_PENDING]
    total_earnings = sum((Decimal(str(record.get('amount', 0))) for record in completed), Decimal('0'))
    pending_amount = sum((Decimal(str(record.get('amount', 0))) for record in pending), Decimal('0'))
    success_rate = Decimal('0')
    if records:
        success_rate = utils_data.to_decimal(Decimal(len(completed)) / Decimal(len(records)) * 100)
    return {
        'total_earnings': utils_data.to_decimal(total_earnings),
        'pending_amount': utils_data.to_decimal(pending_amount),
        'completed_transactions': len(completed),
        'success_rate': success_rate
    }


@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_own_transactions(request) -> Response:
    records = get_user_transactions(request.auth_result['user_id'])
    return Response(status_code=http200, body={
        'transactions': [Transaction(**record)._to_ui() for record in records]
    })


@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_transaction_stats(request) -> Response:
    records = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.transactions_pk),
        filter_expression=Attr('user_id').eq(request.auth_result['user_id'])
    )
    return Response(status_code=http200, body=transaction_stats(records))


@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_all_transactions(request) -> Response:
    utils_auth.require_role(request.auth_result, ROLE_ADMIN)
    records = get_all_transactions()
    return Response(status_code=http200, body={
        'transactions': [Transaction(**record)._to_ui() for record in records],
        'stats': transaction_stats(records)
    })
