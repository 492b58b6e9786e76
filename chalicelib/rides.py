from decimal import Decimal
from typing import Tuple, List, Dict
from uuid import uuid4

from boto3.dynamodb.conditions import Key, Attr
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import VEHICLE_TYPES, VEHICLE_TAXI, PAYMENT_PROVIDERS, PROVIDER_CASH, \
    ROLE_DRIVER, ROLE_ADMIN
from chalicelib.constants.status_codes import http200
from chalicelib.constants.statuses import RIDE_REQUESTED, RIDE_ACCEPTED, RIDE_ARRIVED, RIDE_ONGOING, \
    RIDE_COMPLETED, RIDE_CANCELLED, RIDE_STATUS_TRANSITIONS
from chalicelib.drivers import Driver
from chalicelib.pricing import DriverPricing
from chalicelib.utils import auth as utils_auth, app as utils_app, data as utils_data, db as utils_db, \
    exceptions, transitions as utils_transitions
from chalicelib.utils.geo import haversine_km, is_valid_coordinate
from chalicelib.utils.logger import logger

COORDINATE_EXP = '1.000000'
DRIVER_STATUSES = (RIDE_ACCEPTED, RIDE_ARRIVED, RIDE_ONGOING, RIDE_COMPLETED, RIDE_CANCELLED)
CUSTOMER_STATUSES = (RIDE_CANCELLED,)


class Ride(EntityBase):
    pk = keys_structure.rides_pk
    sk = keys_structure.rides_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'customer_id': lambda x: isinstance(x, str),
        'vehicle_type': lambda x: x in VEHICLE_TYPES,
        'pickup_address': lambda x: isinstance(x, str) and len(x) > 0,
        'dropoff_address': lambda x: isinstance(x, str) and len(x) > 0,
        'pickup_latitude': lambda x: isinstance(x, Decimal),
        'pickup_longitude': lambda x: isinstance(x, Decimal),
        'dropoff_latitude': lambda x: isinstance(x, Decimal),
        'dropoff_longitude': lambda x: isinstance(x, Decimal),
        'distance_km': lambda x: isinstance(x, Decimal) and x >= 0,
        'fare': lambda x: isinstance(x, Decimal) and x >= 0,
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'payment_method': lambda x: x in PAYMENT_PROVIDERS,
        'status_': lambda x: x in RIDE_STATUS_TRANSITIONS,
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'driver_id': lambda x: isinstance(x, str),
        'special_instructions': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.customer_id: str = kwargs.get('customer_id')
        self.driver_id: str = kwargs.get('driver_id')
        self.vehicle_type: str = kwargs.get('vehicle_type', VEHICLE_TAXI)
        self.pickup_address: str = kwargs.get('pickup_address')
        self.pickup_latitude: Decimal = utils_data.to_decimal(kwargs.get('pickup_latitude'), COORDINATE_EXP)
        self.pickup_longitude: Decimal = utils_data.to_decimal(kwargs.get('pickup_longitude'), COORDINATE_EXP)
        self.dropoff_address: str = kwargs.get('dropoff_address')
        self.dropoff_latitude: Decimal = utils_data.to_decimal(kwargs.get('dropoff_latitude'), COORDINATE_EXP)
        self.dropoff_longitude: Decimal = utils_data.to_decimal(kwargs.get('dropoff_longitude'), COORDINATE_EXP)
        self.distance_km: Decimal = utils_data.to_decimal(kwargs.get('distance_km'))
        self.fare: Decimal = utils_data.to_decimal(kwargs.get('fare'))
        self.payment_method: str = kwargs.get('payment_method', PROVIDER_CASH)
        self.special_instructions: str = kwargs.get('special_instructions')
        self.status_: str = kwargs.get('status_', RIDE_REQUESTED)
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or now_iso()
        self.record_type = 'ride'

    @classmethod
    def init_get_by_id(cls, ride_id):
        c = cls(ride_id)
        c.__init__(**c._get_db_item())
        return c

    @classmethod
    @utils_auth.authenticate_class
    def init_request_create(cls, request):
        logger.info("init_request_create ::: started")
        utils_auth.require_registered(request.auth_result)
        request_body = utils_data.parse_raw_body(request)
        for field in ('id', 'id_', 'customer_id', 'driver_id', 'fare', 'distance_km', 'status', 'status_'):
            request_body.pop(field, None)
        vehicle_type = request_body.get('vehicle_type', VEHICLE_TAXI)
        if vehicle_type not in VEHICLE_TYPES:
            raise exceptions.ValidationException(f'vehicle_type={vehicle_type!r} is not one of {VEHICLE_TYPES}')
        for prefix in ('pickup', 'dropoff'):
            latitude, longitude = request_body.get(f'{prefix}_latitude'), request_body.get(f'{prefix}_longitude')
            if latitude is None or longitude is None:
                raise exceptions.MandatoryFieldsAreNotFilled(f'{prefix} coordinates are required')
            if not is_valid_coordinate(latitude, longitude):
                raise exceptions.ValidationException(f'{prefix} coordinates are not valid')
        c = cls(id_=str(uuid4()), customer_id=request.auth_result['user_id'], **request_body)
        c._calculate_fare()
        return c

    @classmethod
    @utils_auth.authenticate_class
    def init_request_get(cls, request, ride_id):
        ride = cls.init_get_by_id(ride_id)
        auth_result = request.auth_result
        visible = auth_result.get('role') in (ROLE_ADMIN, ROLE_DRIVER) or \
            auth_result.get('user_id') in (ride.customer_id, ride.driver_id)
        if not visible:
            raise exceptions.RecordNotFound('Requested ride not found')
        return ride

    @classmethod
    @utils_auth.authenticate_class
    def init_request_status_update(cls, request, ride_id):
        logger.info("init_request_status_update ::: started")
        ride = cls.init_get_by_id(ride_id)
        ride.request_data = {**utils_data.parse_raw_body(request), 'auth_result': request.auth_result}
        return ride

    def _calculate_fare(self):
        """ Fare of the distance between pickup and dropoff, never below the minimum fare """
        self.distance_km = haversine_km(
            self.pickup_latitude, self.pickup_longitude, self.dropoff_latitude, self.dropoff_longitude)
        self.fare = DriverPricing(driver_id='default', vehicle_type=self.vehicle_type).fare_for_distance(
            self.distance_km)

    def _check_status_permissions(self, auth_result, new_status):
        user_id, role = auth_result.get('user_id'), auth_result.get('role')
        if role == ROLE_ADMIN:
            return
        if user_id == self.customer_id and new_status in CUSTOMER_STATUSES:
            return
        if role == ROLE_DRIVER and new_status in DRIVER_STATUSES:
            if new_status == RIDE_ACCEPTED or self.driver_id == user_id:
                return
        raise exceptions.AccessDenied(f'user {user_id} can not move ride {self.id_} to {new_status}')

    def _accept_extra_fields(self, driver_id) -> Dict:
        """ The accepting driver must be verified, the fare follows the driver's own pricing """
        driver = Driver.init_by_id(driver_id)
        if not driver.is_verified:
            raise exceptions.AccessDenied(f'driver {driver_id} is not verified yet')
        fare = DriverPricing.init_for_driver(driver_id, self.vehicle_type).fare_for_distance(self.distance_km)
        return {'driver_id': driver_id, 'fare': fare}

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_create(self) -> Response:
        self._create_db_record()
        return Response(status_code=http200, body=self._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_get_by_id(self) -> Response:
        return Response(status_code=http200, body=self._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_update_status(self) -> Response:
        """
        Accepting is a conditional write on status "requested",
        so when two drivers accept the same ride only the first one wins
        """
        auth_result = self.request_data['auth_result']
        new_status = self.request_data.get('status')
        if not new_status:
            raise exceptions.MandatoryFieldsAreNotFilled('status is required')
        self._check_status_permissions(auth_result, new_status)
        utils_transitions.check_transition(RIDE_STATUS_TRANSITIONS, self.status_, new_status, self.record_type)
        extra_fields = {}
        if new_status == RIDE_ACCEPTED:
            extra_fields = self._accept_extra_fields(auth_result['user_id'])
        attributes = utils_transitions.write_status(
            dict(zip(('partkey', 'sortkey'), self._get_pk_sk())),
            RIDE_STATUS_TRANSITIONS, self.status_, new_status, self.record_type, extra_fields=extra_fields
        )
        self.__init__(**attributes)
        return Response(status_code=http200, body=self._to_ui())

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(ride_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'customer_id': self.customer_id,
            'driver_id': self.driver_id,
            'vehicle_type': self.vehicle_type,
            'pickup_address': self.pickup_address,
            'pickup_latitude': self.pickup_latitude,
            'pickup_longitude': self.pickup_longitude,
            'dropoff_address': self.dropoff_address,
            'dropoff_latitude': self.dropoff_latitude,
            'dropoff_longitude': self.dropoff_longitude,
            'distance_km': self.distance_km,
            'fare': self.fare,
            'payment_method': self.payment_method,
            'special_instructions': self.special_instructions,
            'status_': self.status_,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }


def get_all_rides(filter_expression=None) -> List[Dict]:
    records = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.rides_pk),
        filter_expression=filter_expression
    )
    records.sort(key=lambda record: record.get('date_created', ''), reverse=True)
    return records


@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_rides(request) -> Response:
    """
    driver - assigned rides and open requests, admin - everything, anybody else - own rides
    """
    user_id, role = request.auth_result['user_id'], request.auth_result['role']
    if role == ROLE_DRIVER:
        filter_expression = Attr('driver_id').eq(user_id) | Attr('status_').eq(RIDE_REQUESTED)
    elif role == ROLE_ADMIN:
        filter_expression = None
    else:
        utils_auth.require_registered(request.auth_result)
        filter_expression = Attr('customer_id').eq(user_id)
    return Response(status_code=http200, body={
        'rides': [Ride(**record)._to_ui() for record in get_all_rides(filter_expression)]
    })
