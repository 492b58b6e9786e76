from datetime import datetime
from typing import Dict, Tuple, Optional

from boto3.dynamodb.conditions import Attr

from chalicelib.utils import db as utils_db
from chalicelib.utils.exceptions import InvalidStatusTransition
from chalicelib.utils.logger import logger


def check_transition(transitions: Dict[str, Tuple[str, ...]], current_status: str, new_status: str,
                     record_type: str) -> None:
    if new_status not in transitions:
        raise InvalidStatusTransition(f'{record_type} status {new_status!r} is unknown')
    if new_status not in transitions.get(current_status, ()):
        raise InvalidStatusTransition(
            f'{record_type} can not move from {current_status!r} to {new_status!r}')


def write_status(key: dict, transitions: Dict[str, Tuple[str, ...]], current_status: str, new_status: str,
                 record_type: str, extra_fields: Optional[dict] = None) -> dict:
    """
    Moves a record to new_status.
    The write only succeeds if the stored status still equals current_status,
    otherwise ConcurrentModification is raised
    """
    check_transition(transitions, current_status, new_status, record_type)
    update_body = {
        **(extra_fields or {}),
        'status_': new_status,
        'date_updated': datetime.now().isoformat(timespec='seconds')
    }
    set_response, _ = utils_db.update_db_record(
        key=key,
        update_body=update_body,
        allowed_attrs_to_update=list(update_body.keys()),
        allowed_attrs_to_delete=[],
        condition_expression=Attr('status_').eq(current_status)
    )
    logger.info(f'write_status ::: {record_type} {key=} moved {current_status} -> {new_status}')
    return (set_response or {}).get('Attributes', {})
