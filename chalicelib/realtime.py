"""
Bridge between the table change feed and connected clients.

A Subscription owns one handle per channel. Every change routed through
dispatch() is matched against the open channels, a toast is attached for the
statuses users care about and the change is republished as an event
carrying the new row under "detail".
"""
from typing import Callable, Dict, List, Optional

from chalicelib.constants.statuses import ORDER_DELIVERED, RIDE_ACCEPTED, RIDE_ARRIVED, RIDE_COMPLETED
from chalicelib.constants.substitute_keys import from_db
from chalicelib.utils.data import substitute_keys
from chalicelib.utils.notifications import publish_message
from chalicelib.utils.logger import logger

EVENT_INSERT = 'INSERT'
EVENT_UPDATE = 'UPDATE'
EVENT_DELETE = 'DELETE'
ALL_EVENTS = (EVENT_INSERT, EVENT_UPDATE, EVENT_DELETE)

# DynamoDB stream event names
STREAM_EVENT_NAMES = {'INSERT': EVENT_INSERT, 'MODIFY': EVENT_UPDATE, 'REMOVE': EVENT_DELETE}

# row fields naming the users an event is meant for
AUDIENCE_FIELDS = ('customer_id', 'seller_id', 'driver_id', 'sender_id', 'receiver_id', 'user_id')

RIDE_TOASTS = {
    RIDE_ACCEPTED: {'title': 'Driver Accepted', 'description': 'Your ride has been accepted by a driver!'},
    RIDE_ARRIVED: {'title': 'Driver Arrived', 'description': 'Your driver has arrived at the pickup location'},
    RIDE_COMPLETED: {'title': 'Ride Completed', 'description': 'Thank you for riding with us!'}
}


def to_detail(row: Optional[Dict]) -> Dict:
    detail = dict(row or {})
    substitute_keys(dict_to_process=detail, base_keys=from_db)
    return detail


def event_audience(record_type: str, row: Optional[Dict]) -> Dict[str, str]:
    """
    Users the event is meant for, published as message attributes
    so subscription filter policies can scope delivery per user
    """
    row = row or {}
    audience = {field: str(row[field]) for field in AUDIENCE_FIELDS if row.get(field)}
    if record_type == 'driver' and row.get('id_'):
        audience['driver_id'] = str(row['id_'])
    return audience


def order_toast(change: Dict) -> Optional[Dict]:
    new = change.get('new') or {}
    if change['event'] == EVENT_INSERT:
        order_number = str(new.get('id_', ''))[:8]
        return {'title': 'New Order Received', 'description': f'Order #{order_number} has been placed'}
    if change['event'] == EVENT_UPDATE and new.get('status_') == ORDER_DELIVERED:
        return {'title': 'Order Delivered', 'description': 'Your order has been successfully delivered!'}
    return None


def ride_toast(change: Dict) -> Optional[Dict]:
    return RIDE_TOASTS.get((change.get('new') or {}).get('status_'))


class Channel:
    def __init__(self, name: str, record_type: str, events: tuple, event_name: str,
                 toast: Optional[Callable[[Dict], Optional[Dict]]] = None):
        self.name = name
        self.record_type = record_type
        self.events = events
        self.event_name = event_name
        self.toast = toast
        self.is_open = False

    def matches(self, change: Dict) -> bool:
        return self.is_open and change.get('record_type') == self.record_type and change.get('event') in self.events

    def to_event(self, change: Dict) -> Dict:
        return {
            'event': self.event_name,
            'channel': self.name,
            'change_type': change['event'],
            'toast': self.toast(change) if self.toast else None,
            'audience': event_audience(self.record_type, change.get('new') or change.get('old')),
            'detail': to_detail(change.get('new'))
        }


def default_channels() -> List[Channel]:
    return [
        Channel('orders-changes', 'order', ALL_EVENTS, 'order-update', toast=order_toast),
        Channel('chat-messages', 'chat_message', (EVENT_INSERT,), 'chat-message'),
        Channel('drivers-location', 'driver', (EVENT_UPDATE,), 'driver-update'),
        Channel('rides-status', 'ride', ALL_EVENTS, 'ride-update', toast=ride_toast)
    ]


def publish_event(event: Dict) -> Optional[str]:
    audience = event.get('audience') or {}
    attributes = {'event': event['event'], 'channel': event['channel'], **audience}
    if audience:
        attributes['user_ids'] = sorted(set(audience.values()))
    return publish_message(event, attributes=attributes)


class Subscription:
    """
    Handle of the open channels. Subscriptions are independent of each other,
    unsubscribe() closes only the channels of this handle
    """

    def __init__(self, publish: Callable[[Dict], Optional[str]] = publish_event):
        self.publish = publish
        self.channels: Dict[str, Channel] = {channel.name: channel for channel in default_channels()}
        for channel in self.channels.values():
            channel.is_open = True
        logger.info(f'Subscription ::: opened channels {list(self.channels)}')

    @property
    def is_active(self) -> bool:
        return any(channel.is_open for channel in self.channels.values())

    def dispatch(self, change: Dict) -> List[Dict]:
        events = [channel.to_event(change) for channel in self.channels.values() if channel.matches(change)]
        for event in events:
            if event['toast']:
                logger.info(f"dispatch ::: toast {event['toast']['title']!r} on {event['channel']}")
            self.publish(event)
        return events

    def unsubscribe(self) -> None:
        for channel in self.channels.values():
            channel.is_open = False
        logger.info(f'Subscription ::: closed channels {list(self.channels)}')


def subscribe(publish: Callable[[Dict], Optional[str]] = publish_event) -> Subscription:
    return Subscription(publish=publish)


def to_change(record_type: str, stream_event_name: str, new: Optional[Dict], old: Optional[Dict]) -> Dict:
    return {
        'record_type': record_type,
        'event': STREAM_EVENT_NAMES.get(stream_event_name, stream_event_name),
        'new': new,
        'old': old
    }
