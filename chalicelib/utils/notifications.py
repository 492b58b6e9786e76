import json
import os
from typing import Dict, Optional

from chalicelib.utils.boto_clients import sns_client
from chalicelib.utils.logger import logger, CustomJSONEncoder


def realtime_topic_arn() -> Optional[str]:
    return os.environ.get('REALTIME_TOPIC_ARN')


def message_attribute(value) -> Dict[str, str]:
    if isinstance(value, (list, tuple)):
        return {'DataType': 'String.Array', 'StringValue': json.dumps([str(item) for item in value])}
    return {'DataType': 'String', 'StringValue': str(value)}


def publish_message(message: Dict, attributes: Dict, topic_arn: Optional[str] = None) -> Optional[str]:
    """
    Publishes a JSON message to the fan-out topic.
    Attributes are used by subscribers to filter by event name or user,
    a list becomes a String.Array attribute
    """
    topic_arn = topic_arn or realtime_topic_arn()
    if not topic_arn:
        logger.info(f'publish_message ::: REALTIME_TOPIC_ARN is not configured, skipping {attributes=}')
        return None
    response = sns_client.publish(
        TopicArn=topic_arn,
        Message=json.dumps(message, cls=CustomJSONEncoder),
        MessageAttributes={key: message_attribute(value) for key, value in attributes.items()}
    )
    logger.info(f'publish_message ::: message has been published, message_id={response.get("MessageId")}')
    return response.get('MessageId')
