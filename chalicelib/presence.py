import time
from decimal import Decimal
from typing import Tuple, Dict, List, Optional

from boto3.dynamodb.conditions import Key, Attr
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import PRESENCE_TTL_SECONDS, USER_ROLES
from chalicelib.constants.status_codes import http200
from chalicelib.realtime import EVENT_DELETE
from chalicelib.utils import auth as utils_auth, app as utils_app, db as utils_db, exceptions
from chalicelib.utils.logger import logger
from chalicelib.utils.notifications import publish_message

PRESENCE_EVENT = 'presence-update'


class Presence(EntityBase):
    """
    Online marker of a user. expires_at is the table TTL attribute,
    a user who stops sending heartbeats drops out of presence_state
    """
    pk = keys_structure.presence_pk
    sk = keys_structure.presence_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'user_type': lambda x: x in USER_ROLES,
        'online_at': lambda x: isinstance(x, str),
        'expires_at': lambda x: isinstance(x, (int, Decimal))
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.user_type: str = kwargs.get('user_type')
        self.online_at: str = kwargs.get('online_at') or now_iso()
        self.expires_at: int = int(kwargs.get('expires_at') or time.time() + PRESENCE_TTL_SECONDS)
        self.record_type = 'presence'

    def is_online(self, now: Optional[float] = None) -> bool:
        return self.expires_at > (now if now is not None else time.time())

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(user_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'user_type': self.user_type,
            'online_at': self.online_at,
            'expires_at': self.expires_at
        }

    def to_payload(self) -> Dict:
        return {'user_id': self.id_, 'user_type': self.user_type, 'online_at': self.online_at}


def track_presence(user_id: str, user_type: str) -> Presence:
    if not user_id:
        raise exceptions.MandatoryFieldsAreNotFilled('user_id is required to track presence')
    presence = Presence(user_id, user_type=user_type)
    presence._create_db_record()
    logger.info(f'track_presence ::: {user_id=} {user_type=} online until {presence.expires_at}')
    return presence


def presence_state(now: Optional[float] = None) -> Dict[str, List[Dict]]:
    """ Who is online, grouped by user id """
    now = now if now is not None else time.time()
    records = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.presence_pk),
        filter_expression=Attr('expires_at').gt(int(now))
    )
    state: Dict[str, List[Dict]] = {}
    for record in records:
        presence = Presence(**record)
        if presence.is_online(now):
            state.setdefault(presence.id_, []).append(presence.to_payload())
    return state


def handle_presence_change(change: Dict) -> Optional[str]:
    if change.get('record_type') != 'presence':
        return None
    row = change.get('old') if change.get('event') == EVENT_DELETE else change.get('new')
    if not row:
        return None
    presence = Presence(**row)
    return publish_message(
        {
            'event': PRESENCE_EVENT,
            'change_type': change.get('event'),
            'online': change.get('event') != EVENT_DELETE,
            'detail': presence.to_payload()
        },
        attributes={'event': PRESENCE_EVENT}
    )


@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_track_presence(request) -> Response:
    utils_auth.require_registered(request.auth_result)
    presence = track_presence(request.auth_result['user_id'], request.auth_result['role'])
    return Response(status_code=http200, body=presence.to_payload())


@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_presence_state(request) -> Response:
    return Response(status_code=http200, body=presence_state())
