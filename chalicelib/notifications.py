import base64
import hashlib
import os
from typing import Tuple, List, Dict, Callable, Optional
from uuid import uuid4

from boto3.dynamodb.conditions import Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import NOTIFICATION_ICON, ROLE_ADMIN
from chalicelib.constants.status_codes import http200
from chalicelib.constants.substitute_keys import to_db
from chalicelib.realtime import EVENT_INSERT, to_detail
from chalicelib.utils import auth as utils_auth, app as utils_app, data as utils_data, db as utils_db, exceptions
from chalicelib.utils.data import substitute_keys
from chalicelib.utils.logger import logger
from chalicelib.utils.notifications import publish_message

DEFAULT_VAPID_PUBLIC_KEY = 'BEl62iUYgUivxIkv69yViEuiBIa-Ib9-SkvMeAtA3LFgDzkrxZJjSgSnfckjBJuBkr3qBUYIHBQFLXYp5Nksh8U'
PUSH_EVENT = 'push-notification'
PUSH_VIBRATION_PATTERN = [200, 100, 200]
PUSH_ACTIONS = [{'action': 'view', 'title': 'View'}, {'action': 'close', 'title': 'Close'}]


def url_base64_to_bytes(base64_string: str) -> bytes:
    """ Decodes the url-safe base64 VAPID key the push service expects as raw bytes """
    padding = '=' * ((4 - len(base64_string) % 4) % 4)
    return base64.b64decode((base64_string + padding).replace('-', '+').replace('_', '/'))


def vapid_public_key() -> str:
    return os.environ.get('VAPID_PUBLIC_KEY', DEFAULT_VAPID_PUBLIC_KEY)


class Notification(EntityBase):
    pk = keys_structure.notifications_pk
    sk = keys_structure.notifications_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'user_id': lambda x: isinstance(x, str),
        'title': lambda x: isinstance(x, str) and len(x) > 0,
        'message': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'is_read': lambda x: isinstance(x, bool),
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'type_': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, user_id, **kwargs):
        EntityBase.__init__(self, id_)

        self.user_id: str = user_id
        self.title: str = kwargs.get('title')
        self.message: str = kwargs.get('message', '')
        self.type_: str = kwargs.get('type_', 'general')
        self.is_read: bool = kwargs.get('is_read', False)
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or now_iso()
        self.record_type = 'notification'

    @classmethod
    def init_get_by_id(cls, notification_id, user_id):
        c = cls(notification_id, user_id)
        c.__init__(**c._get_db_item())
        return c

    @classmethod
    @utils_auth.authenticate_class
    def init_request_create(cls, request):
        """ Admin broadcast to a single user """
        logger.info("init_request_create ::: started")
        utils_auth.require_role(request.auth_result, ROLE_ADMIN)
        request_body = utils_data.parse_raw_body(request)
        substitute_keys(dict_to_process=request_body, base_keys=to_db)
        user_id = request_body.pop('user_id', None)
        if not user_id:
            raise exceptions.MandatoryFieldsAreNotFilled('user_id is required')
        for field in ('id_', 'is_read'):
            request_body.pop(field, None)
        return cls(str(uuid4()), user_id, **request_body)

    @classmethod
    @utils_auth.authenticate_class
    def init_request_mark_read(cls, request, notification_id):
        notification = cls.init_get_by_id(notification_id, request.auth_result['user_id'])
        notification.is_read = True
        return notification

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_create(self) -> Response:
        self._create_db_record()
        return Response(status_code=http200, body=self._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_mark_read(self) -> Response:
        self._update_db_record()
        return Response(status_code=http200, body={'id': self.id_, 'is_read': self.is_read})

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk.format(user_id=self.user_id), self.sk.format(notification_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'user_id': self.user_id,
            'title': self.title,
            'message': self.message,
            'type_': self.type_,
            'is_read': self.is_read,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }


def create_notification(user_id: str, title: str, message: str, type_: str = 'general') -> Notification:
    notification = Notification(str(uuid4()), user_id, title=title, message=message, type_=type_)
    notification._create_db_record()
    return notification


class PushSubscription(EntityBase):
    """ Web Push subscription of one browser, the id is derived from the push endpoint """
    pk = keys_structure.push_subscriptions_pk
    sk = keys_structure.push_subscriptions_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'user_id': lambda x: isinstance(x, str),
        'endpoint': lambda x: isinstance(x, str) and x.startswith('https://'),
        'keys': lambda x: isinstance(x, dict) and bool(x.get('p256dh')) and bool(x.get('auth')),
        'date_created': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, user_id, **kwargs):
        EntityBase.__init__(self, id_)

        self.user_id: str = user_id
        self.endpoint: str = kwargs.get('endpoint')
        self.keys: dict = kwargs.get('keys')
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.record_type = 'push_subscription'

    @classmethod
    @utils_auth.authenticate_class
    def init_request_subscribe(cls, request):
        logger.info("init_request_subscribe ::: started")
        request_body = utils_data.parse_raw_body(request)
        endpoint = request_body.get('endpoint')
        if not endpoint:
            raise exceptions.MandatoryFieldsAreNotFilled('endpoint is required')
        return cls(
            hashlib.sha256(endpoint.encode()).hexdigest(),
            request.auth_result['user_id'],
            endpoint=endpoint,
            keys=request_body.get('keys')
        )

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_subscribe(self) -> Response:
        self._create_db_record()
        return Response(status_code=http200, body={'message': 'Push notifications enabled', 'id': self.id_})

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk.format(user_id=self.user_id), self.sk.format(subscription_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'user_id': self.user_id,
            'endpoint': self.endpoint,
            'keys': self.keys,
            'date_created': self.date_created
        }


def build_push_notification(row: Dict) -> Dict:
    detail = to_detail(row)
    return {
        'title': detail.get('title'),
        'body': detail.get('message'),
        'icon': NOTIFICATION_ICON,
        'badge': NOTIFICATION_ICON,
        'vibrate': PUSH_VIBRATION_PATTERN,
        'actions': PUSH_ACTIONS,
        'tag': detail.get('type'),
        'data': detail
    }


def publish_push_notification(user_id: str, push_notification: Dict) -> Optional[str]:
    return publish_message(
        {'event': PUSH_EVENT, 'notification': push_notification},
        attributes={'event': PUSH_EVENT, 'user_id': user_id}
    )


def push_notification_for_change(change: Dict, user_id: Optional[str] = None) -> Optional[Dict]:
    """ Push payload for a newly inserted notification row, optionally only for one user """
    if change.get('record_type') != 'notification' or change.get('event') != EVENT_INSERT:
        return None
    row = change.get('new') or {}
    if user_id is not None and row.get('user_id') != user_id:
        return None
    return build_push_notification(row)


def handle_notification_change(change: Dict) -> Optional[str]:
    push_notification = push_notification_for_change(change)
    if push_notification is None:
        return None
    return publish_push_notification(change['new']['user_id'], push_notification)


def setup_notification_listener(user_id: str, deliver: Callable[[Dict], None]) -> Tuple[Callable, Callable]:
    """
    Listener that hands push payloads of user_id's new notifications to deliver.
    Returns (listener, dispose), after dispose() the listener ignores every change
    """
    state = {'active': True}

    def listener(change: Dict) -> Optional[Dict]:
        if not state['active']:
            return None
        push_notification = push_notification_for_change(change, user_id=user_id)
        if push_notification is not None:
            deliver(push_notification)
        return push_notification

    def dispose() -> None:
        state['active'] = False
        logger.info(f'setup_notification_listener ::: listener of {user_id} disposed')

    return listener, dispose


@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_notifications(request) -> Response:
    records: List[Dict] = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.notifications_pk.format(user_id=request.auth_result['user_id'])))
    records.sort(key=lambda record: record.get('date_created', ''), reverse=True)
    notifications = [Notification(**record)._to_ui() for record in records]
    return Response(status_code=http200, body={
        'notifications': notifications,
        'unread': len([item for item in notifications if not item['is_read']])
    })


def endpoint_vapid_public_key() -> Response:
    return Response(status_code=http200, body={'public_key': vapid_public_key()})
