from typing import Dict, List

from boto3.dynamodb.types import TypeDeserializer
from chalice.app import DynamoDBEvent

from chalicelib.notifications import handle_notification_change
from chalicelib.presence import handle_presence_change
from chalicelib.realtime import subscribe, to_change
from chalicelib.utils.logger import logger, log_exception


deserializer = TypeDeserializer()

gen_table_trigger_func_dict = {
    'notification': handle_notification_change,
    'presence': handle_presence_change
}


def deserialize_ddb_rec(record=None):
    if record is None:
        record = {}
    return {key: deserializer.deserialize(value) for key, value in record.items()}


def db_gen_table_stream_trigger(ddb_event: DynamoDBEvent) -> List[Dict]:
    """
    Republishes every change of the table to the realtime channels.
    A failing record is logged and does not stop the rest of the batch
    """
    logger.debug(f'db_gen_table_stream_trigger ::: function triggered ddb_event={ddb_event.to_dict()}')
    subscription = subscribe()
    published = []
    try:
        for record in ddb_event:
            try:
                normalized_new = deserialize_ddb_rec(record.new_image)
                normalized_old = deserialize_ddb_rec(record.old_image)
                record_type = normalized_new.get('record_type') or normalized_old.get('record_type')
                if not record_type:
                    continue
                change = to_change(record_type, record.event_name, normalized_new or None, normalized_old or None)
                published.extend(subscription.dispatch(change))
                if record_type in gen_table_trigger_func_dict:
                    gen_table_trigger_func_dict[record_type](change)
            except Exception as e:
                log_exception(e, msg=f'db_gen_table_stream_trigger ::: record {record.event_id} failed')
    finally:
        subscription.unsubscribe()
    return published
