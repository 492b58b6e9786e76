from typing import Tuple, List, Dict, Optional
from uuid import uuid4

from boto3.dynamodb.conditions import Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ROLE_ADMIN
from chalicelib.constants.status_codes import http200
from chalicelib.orders import Order
from chalicelib.rides import Ride
from chalicelib.utils import auth as utils_auth, app as utils_app, data as utils_data, db as utils_db, exceptions
from chalicelib.utils.logger import logger


def get_conversation_id(user_id: str, other_user_id: Optional[str] = None, order_id: Optional[str] = None,
                        ride_id: Optional[str] = None) -> str:
    """
    Messages about an order or a ride share one conversation,
    otherwise the conversation belongs to the pair of users
    """
    if order_id:
        return f'order_{order_id}'
    if ride_id:
        return f'ride_{ride_id}'
    if not other_user_id:
        raise exceptions.MandatoryFieldsAreNotFilled('receiver_id, order_id or ride_id is required')
    return 'users_{}_{}'.format(*sorted((user_id, other_user_id)))


def get_conversation_parties(order_id: Optional[str] = None, ride_id: Optional[str] = None) -> Optional[Tuple]:
    """
    Users taking part in an order or a ride conversation, None for a conversation between two users.
    Raises RecordNotFound when the order or the ride does not exist
    """
    if order_id:
        order = Order.init_get_by_id(order_id)
        return tuple(party for party in (order.customer_id, order.seller_id, order.driver_id) if party)
    if ride_id:
        ride = Ride.init_get_by_id(ride_id)
        return tuple(party for party in (ride.customer_id, ride.driver_id) if party)
    return None


def require_conversation_party(auth_result: dict, order_id: Optional[str] = None,
                               ride_id: Optional[str] = None) -> Optional[Tuple]:
    parties = get_conversation_parties(order_id=order_id, ride_id=ride_id)
    if parties is not None and auth_result.get('role') != ROLE_ADMIN and auth_result.get('user_id') not in parties:
        raise exceptions.AccessDenied(
            f"user {auth_result.get('user_id')} does not take part in {order_id=} {ride_id=}")
    return parties


class ChatMessage(EntityBase):
    pk = keys_structure.chats_pk
    sk = keys_structure.chats_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'conversation_id': lambda x: isinstance(x, str),
        'sender_id': lambda x: isinstance(x, str),
        'message': lambda x: isinstance(x, str) and len(x.strip()) > 0,
        'date_created': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'receiver_id': lambda x: isinstance(x, str),
        'order_id': lambda x: isinstance(x, str),
        'ride_id': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.conversation_id: str = kwargs.get('conversation_id')
        self.sender_id: str = kwargs.get('sender_id')
        self.receiver_id: str = kwargs.get('receiver_id')
        self.message: str = kwargs.get('message')
        self.order_id: str = kwargs.get('order_id')
        self.ride_id: str = kwargs.get('ride_id')
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.record_type = 'chat_message'

    @classmethod
    @utils_auth.authenticate_class
    def init_request_send(cls, request):
        logger.info("init_request_send ::: started")
        utils_auth.require_registered(request.auth_result)
        request_body = utils_data.parse_raw_body(request)
        sender_id = request.auth_result['user_id']
        parties = require_conversation_party(
            request.auth_result, order_id=request_body.get('order_id'), ride_id=request_body.get('ride_id'))
        receiver_id = request_body.get('receiver_id')
        if parties is not None and receiver_id and receiver_id not in parties:
            raise exceptions.ValidationException(f'receiver {receiver_id} does not take part in the conversation')
        conversation_id = get_conversation_id(
            sender_id,
            other_user_id=request_body.get('receiver_id'),
            order_id=request_body.get('order_id'),
            ride_id=request_body.get('ride_id')
        )
        return cls(
            id_=str(uuid4()),
            conversation_id=conversation_id,
            sender_id=sender_id,
            receiver_id=request_body.get('receiver_id'),
            message=request_body.get('message'),
            order_id=request_body.get('order_id'),
            ride_id=request_body.get('ride_id')
        )

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_send(self) -> Response:
        self._create_db_record()
        return Response(status_code=http200, body=self._to_ui())

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk.format(conversation_id=self.conversation_id), \
            self.sk.format(date_created=self.date_created, chat_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'conversation_id': self.conversation_id,
            'sender_id': self.sender_id,
            'receiver_id': self.receiver_id,
            'message': self.message,
            'order_id': self.order_id,
            'ride_id': self.ride_id,
            'date_created': self.date_created
        }


@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_conversation(request) -> Response:
    """
    Messages of one conversation in the order they were sent.
    Query params: order_id, ride_id or user_id of the other party
    """
    query_params = request.query_params or {}
    user_id = request.auth_result['user_id']
    require_conversation_party(request.auth_result, order_id=query_params.get('order_id'),
                               ride_id=query_params.get('ride_id'))
    conversation_id = get_conversation_id(
        user_id,
        other_user_id=query_params.get('user_id'),
        order_id=query_params.get('order_id'),
        ride_id=query_params.get('ride_id')
    )
    records: List[Dict] = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.chats_pk.format(conversation_id=conversation_id)))
    if request.auth_result['role'] != ROLE_ADMIN:
        records = [
            record for record in records
            if user_id in (record.get('sender_id'), record.get('receiver_id')) or not record.get('receiver_id')
        ]
    return Response(status_code=http200, body={
        'conversation_id': conversation_id,
        'messages': [ChatMessage(**record)._to_ui() for record in records]
    })
