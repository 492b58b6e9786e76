from chalicelib import realtime
from chalicelib.realtime import subscribe, to_change
from chalicelib.utils import notifications as utils_notifications


def order_row(status='pending'):
    return {'id_': 'a1b2c3d4-0000-4000-8000-000000000000', 'status_': status, 'customer_id': 'c1',
            'partkey': 'orders', 'sortkey': 'a1b2c3d4-0000-4000-8000-000000000000'}


def test_to_change_maps_stream_event_names():
    assert to_change('order', 'MODIFY', {'a': 1}, None) == {
        'record_type': 'order', 'event': 'UPDATE', 'new': {'a': 1}, 'old': None}
    assert to_change('order', 'REMOVE', None, {'a': 1})['event'] == 'DELETE'


def test_new_order_toast():
    published = []
    events = subscribe(publish=published.append).dispatch(to_change('order', 'INSERT', order_row(), None))
    assert events == published
    assert events[0]['event'] == 'order-update'
    assert events[0]['channel'] == 'orders-changes'
    assert events[0]['toast'] == {'title': 'New Order Received', 'description': 'Order #a1b2c3d4 has been placed'}
    assert events[0]['detail'] == {'id': 'a1b2c3d4-0000-4000-8000-000000000000', 'status': 'pending',
                                   'customer_id': 'c1'}


def test_order_updates_toast_only_on_delivery():
    subscription = subscribe(publish=lambda event: None)
    shipped = subscription.dispatch(to_change('order', 'MODIFY', order_row('shipped'), order_row('confirmed')))
    delivered = subscription.dispatch(to_change('order', 'MODIFY', order_row('delivered'), order_row('shipped')))
    assert shipped[0]['toast'] is None
    assert delivered[0]['toast']['title'] == 'Order Delivered'


def test_ride_status_toasts():
    subscription = subscribe(publish=lambda event: None)
    for status, title in (('accepted', 'Driver Accepted'), ('arrived', 'Driver Arrived'),
                          ('completed', 'Ride Completed')):
        events = subscription.dispatch(to_change('ride', 'MODIFY', {'id_': 'r1', 'status_': status}, None))
        assert events[0]['toast']['title'] == title
    events = subscription.dispatch(to_change('ride', 'MODIFY', {'id_': 'r1', 'status_': 'ongoing'}, None))
    assert events[0]['toast'] is None


def test_channels_filter_event_types():
    subscription = subscribe(publish=lambda event: None)
    assert subscription.dispatch(to_change('chat_message', 'MODIFY', {'id_': 'm1'}, None)) == []
    assert subscription.dispatch(to_change('driver', 'INSERT', {'id_': 'd1'}, None)) == []
    assert subscription.dispatch(to_change('user', 'INSERT', {'id_': 'u1'}, None)) == []
    assert [event['event'] for event in subscription.dispatch(
        to_change('chat_message', 'INSERT', {'id_': 'm1'}, None))] == ['chat-message']
    assert [event['event'] for event in subscription.dispatch(
        to_change('driver', 'MODIFY', {'id_': 'd1', 'is_online': True}, None))] == ['driver-update']


def test_unsubscribe_stops_only_own_channels():
    first_published, second_published = [], []
    first = subscribe(publish=first_published.append)
    second = subscribe(publish=second_published.append)
    first.unsubscribe()
    assert not first.is_active and second.is_active

    change = to_change('ride', 'INSERT', {'id_': 'r1', 'status_': 'requested'}, None)
    assert first.dispatch(change) == []
    assert len(second.dispatch(change)) == 1
    assert first_published == [] and len(second_published) == 1


def test_publish_event_without_topic_is_skipped(monkeypatch):
    monkeypatch.delenv('REALTIME_TOPIC_ARN', raising=False)
    assert realtime.publish_event({'event': 'ride-update', 'channel': 'rides-status'}) is None


def test_events_name_their_audience():
    subscription = subscribe(publish=lambda event: None)
    order_events = subscription.dispatch(to_change('order', 'INSERT', {**order_row(), 'seller_id': 's1'}, None))
    assert order_events[0]['audience'] == {'customer_id': 'c1', 'seller_id': 's1'}

    chat_events = subscription.dispatch(to_change(
        'chat_message', 'INSERT', {'id_': 'm1', 'sender_id': 'c1', 'receiver_id': 'd1'}, None))
    assert chat_events[0]['audience'] == {'sender_id': 'c1', 'receiver_id': 'd1'}

    removed = subscription.dispatch(to_change('ride', 'REMOVE', None, {'id_': 'r1', 'customer_id': 'c1'}))
    assert removed[0]['audience'] == {'customer_id': 'c1'}
    assert removed[0]['detail'] == {}


def test_driver_location_is_addressed_to_the_driver():
    assert realtime.event_audience('driver', {'id_': 'd1', 'user_id': 'd1', 'is_online': True}) == \
        {'user_id': 'd1', 'driver_id': 'd1'}


def test_publish_event_scopes_delivery_by_user(monkeypatch):
    calls = []
    monkeypatch.setattr(realtime, 'publish_message',
                        lambda message, attributes: calls.append(attributes) or 'message-1')
    event = subscribe(publish=lambda event: None).dispatch(to_change(
        'order', 'MODIFY', {**order_row('shipped'), 'seller_id': 's1', 'driver_id': 'd1'}, None))[0]

    assert realtime.publish_event(event) == 'message-1'
    assert calls == [{
        'event': 'order-update',
        'channel': 'orders-changes',
        'customer_id': 'c1',
        'seller_id': 's1',
        'driver_id': 'd1',
        'user_ids': ['c1', 'd1', 's1']
    }]


def test_user_ids_are_published_as_string_array(monkeypatch):
    published = []

    class FakeSNS:
        @staticmethod
        def publish(**kwargs):
            published.append(kwargs)
            return {'MessageId': 'message-1'}

    monkeypatch.setenv('REALTIME_TOPIC_ARN', 'arn:aws:sns:eu-central-1:000000000000:apanda-realtime')
    monkeypatch.setattr(utils_notifications, 'sns_client', FakeSNS)
    assert utils_notifications.publish_message({'event': 'ride-update'},
                                               attributes={'event': 'ride-update', 'user_ids': ['c1', 'd1']})
    attributes = published[0]['MessageAttributes']
    assert attributes['event'] == {'DataType': 'String', 'StringValue': 'ride-update'}
    assert attributes['user_ids'] == {'DataType': 'String.Array', 'StringValue': '["c1", "d1"]'}
