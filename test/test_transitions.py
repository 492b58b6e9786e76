import pytest

from chalicelib.constants.statuses import ORDER_STATUS_TRANSITIONS, RIDE_STATUS_TRANSITIONS
from chalicelib.utils.exceptions import InvalidStatusTransition, ConcurrentModification
from chalicelib.utils.transitions import check_transition, write_status

KEY = {'partkey': 'rides', 'sortkey': 'ride-1'}


@pytest.mark.parametrize('current, new', [
    ('pending', 'confirmed'),
    ('pending', 'cancelled'),
    ('confirmed', 'shipped'),
    ('shipped', 'delivered'),
    ('delivered', 'completed'),
])
def test_allowed_order_transitions(current, new):
    check_transition(ORDER_STATUS_TRANSITIONS, current, new, 'order')


@pytest.mark.parametrize('current, new', [
    ('pending', 'delivered'),
    ('delivered', 'pending'),
    ('cancelled', 'confirmed'),
    ('completed', 'cancelled'),
    ('pending', 'lost'),
])
def test_rejected_order_transitions(current, new):
    with pytest.raises(InvalidStatusTransition):
        check_transition(ORDER_STATUS_TRANSITIONS, current, new, 'order')


def test_ride_can_skip_arrived():
    check_transition(RIDE_STATUS_TRANSITIONS, 'accepted', 'ongoing', 'ride')
    with pytest.raises(InvalidStatusTransition):
        check_transition(RIDE_STATUS_TRANSITIONS, 'ongoing', 'cancelled', 'ride')


def test_write_status_moves_record(gen_table):
    gen_table.put(**KEY, status_='requested')
    attributes = write_status(KEY, RIDE_STATUS_TRANSITIONS, 'requested', 'accepted', 'ride',
                              extra_fields={'driver_id': 'driver-1'})
    assert attributes['status_'] == 'accepted'
    assert gen_table.get(**KEY)['driver_id'] == 'driver-1'


def test_write_status_loses_against_concurrent_writer(gen_table):
    gen_table.put(**KEY, status_='requested')
    write_status(KEY, RIDE_STATUS_TRANSITIONS, 'requested', 'accepted', 'ride', extra_fields={'driver_id': 'first'})
    with pytest.raises(ConcurrentModification):
        write_status(KEY, RIDE_STATUS_TRANSITIONS, 'requested', 'accepted', 'ride',
                     extra_fields={'driver_id': 'second'})
    assert gen_table.get(**KEY)['driver_id'] == 'first'
