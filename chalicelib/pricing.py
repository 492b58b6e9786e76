from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Tuple

from boto3.dynamodb.conditions import Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import VEHICLE_TAXI, VEHICLE_MOTORBIKE, VEHICLE_PICKUP, VEHICLE_TYPES, \
    MINIMUM_FARE_RATIO, DEFAULT_WAITING_CHARGE, ROLE_DRIVER
from chalicelib.constants.status_codes import http200
from chalicelib.constants.statuses import ERRAND_URGENCY_NORMAL, ERRAND_URGENCY_URGENT, ERRAND_URGENCY_EXPRESS
from chalicelib.utils import auth as utils_auth, app as utils_app, data as utils_data, db as utils_db, exceptions
from chalicelib.utils.logger import logger

VEHICLE_DEFAULTS = {
    VEHICLE_TAXI: {'label': 'Taxi (4 seats)', 'base_fare': Decimal('200'), 'per_km_rate': Decimal('50')},
    VEHICLE_MOTORBIKE: {'label': 'Motorbike (1 passenger)', 'base_fare': Decimal('150'), 'per_km_rate': Decimal('30')},
    VEHICLE_PICKUP: {'label': 'Pickup Truck (cargo)', 'base_fare': Decimal('300'), 'per_km_rate': Decimal('70')}
}

URGENCY_MULTIPLIERS = {
    ERRAND_URGENCY_NORMAL: Decimal('1'),
    ERRAND_URGENCY_URGENT: Decimal('1.5'),
    ERRAND_URGENCY_EXPRESS: Decimal('2')
}

ERRAND_SERVICES = {
    'grocery': {'name': 'Grocery Shopping', 'base_price': Decimal('300'), 'estimated_time': '1-2 hours',
                'description': 'We shop for your groceries and deliver to your door'},
    'documents': {'name': 'Document Collection', 'base_price': Decimal('200'), 'estimated_time': '30-60 mins',
                  'description': 'Pick up and deliver important documents'},
    'pharmacy': {'name': 'Pharmacy Pickup', 'base_price': Decimal('250'), 'estimated_time': '45-90 mins',
                 'description': 'Medicine and health product delivery'},
    'banking': {'name': 'Banking Services', 'base_price': Decimal('400'), 'estimated_time': '1-2 hours',
                'description': 'Deposit, withdrawal, and bank errands'},
    'postal': {'name': 'Postal Services', 'base_price': Decimal('300'), 'estimated_time': '1 hour',
               'description': 'Post office visits and package collection'},
    'custom': {'name': 'Custom Errand', 'base_price': Decimal('500'), 'estimated_time': 'Varies',
               'description': 'Any other task you need help with'}
}


def fare_preview(base_fare, per_km_rate, distance_km) -> Decimal:
    """ base_fare + distance_km * per_km_rate, e.g. 200 + 5 * 50 = 450 """
    base_fare = utils_data.to_decimal(base_fare)
    per_km_rate = utils_data.to_decimal(per_km_rate)
    distance_km = utils_data.to_decimal(distance_km)
    if base_fare is None or per_km_rate is None or distance_km is None:
        raise exceptions.MandatoryFieldsAreNotFilled('base_fare, per_km_rate and distance_km are required')
    if base_fare < 0 or per_km_rate < 0 or distance_km < 0:
        raise exceptions.ValidationException('Fare components can not be negative')
    return (base_fare + distance_km * per_km_rate).quantize(Decimal('1.00'), rounding=ROUND_HALF_UP)


def errand_price(base_price, urgency: str = ERRAND_URGENCY_NORMAL) -> Decimal:
    """ Errand price rounded to whole shillings: 300 urgent -> 450, 300 express -> 600 """
    if urgency not in URGENCY_MULTIPLIERS:
        raise exceptions.ValidationException(
            f'urgency={urgency!r} is not one of {list(URGENCY_MULTIPLIERS.keys())}')
    base_price = utils_data.to_decimal(base_price)
    if base_price is None or base_price < 0:
        raise exceptions.ValidationException('base_price must be a non negative number')
    return (base_price * URGENCY_MULTIPLIERS[urgency]).quantize(Decimal('1'), rounding=ROUND_HALF_UP)


def get_errand_service(service_type: str) -> Dict:
    try:
        return ERRAND_SERVICES[service_type]
    except KeyError:
        raise exceptions.ValidationException(
            f'service_type={service_type!r} is not one of {list(ERRAND_SERVICES.keys())}')


def default_minimum_fare(base_fare) -> Decimal:
    return (utils_data.to_decimal(base_fare) * MINIMUM_FARE_RATIO).quantize(Decimal('1.00'), rounding=ROUND_HALF_UP)


class DriverPricing(EntityBase):
    pk = keys_structure.driver_pricing_pk
    sk = keys_structure.driver_pricing_sk

    required_immutable_fields_validation = {
        'driver_id': lambda x: isinstance(x, str),
        'vehicle_type': lambda x: x in VEHICLE_TYPES
    }

    required_mutable_fields_validation = {
        'base_fare': lambda x: isinstance(x, Decimal) and x >= 0,
        'per_km_rate': lambda x: isinstance(x, Decimal) and x >= 0,
        'minimum_fare': lambda x: isinstance(x, Decimal) and x >= 0,
        'waiting_charge': lambda x: isinstance(x, Decimal) and x >= 0,
        'date_updated': lambda x: isinstance(x, str)
    }

    def __init__(self, driver_id, vehicle_type, **kwargs):
        EntityBase.__init__(self, f'{driver_id}_{vehicle_type}')

        defaults = VEHICLE_DEFAULTS.get(vehicle_type, {})
        self.driver_id: str = driver_id
        self.vehicle_type: str = vehicle_type
        self.base_fare: Decimal = utils_data.to_decimal(kwargs.get('base_fare', defaults.get('base_fare')))
        self.per_km_rate: Decimal = utils_data.to_decimal(kwargs.get('per_km_rate', defaults.get('per_km_rate')))
        minimum_fare = kwargs.get('minimum_fare')
        if minimum_fare is None and self.base_fare is not None:
            minimum_fare = default_minimum_fare(self.base_fare)
        self.minimum_fare: Decimal = utils_data.to_decimal(minimum_fare)
        self.waiting_charge: Decimal = utils_data.to_decimal(kwargs.get('waiting_charge', DEFAULT_WAITING_CHARGE))
        self.is_default: bool = kwargs.get('is_default', False)
        self.date_updated: str = kwargs.get('date_updated') or now_iso()
        self.record_type = 'driver_pricing'

    @classmethod
    def init_for_driver(cls, driver_id, vehicle_type):
        """ Stored pricing of the driver, vehicle defaults when nothing was saved yet """
        if vehicle_type not in VEHICLE_TYPES:
            raise exceptions.ValidationException(f'vehicle_type={vehicle_type!r} is not one of {VEHICLE_TYPES}')
        c = cls(driver_id, vehicle_type)
        try:
            record = c._get_db_item()
        except exceptions.RecordNotFound:
            c.is_default = True
            return c
        c.__init__(**record)
        return c

    @classmethod
    @utils_auth.authenticate_class
    def init_request_upsert(cls, request, vehicle_type):
        logger.info("init_request_upsert ::: started")
        utils_auth.require_role(request.auth_result, ROLE_DRIVER)
        if vehicle_type not in VEHICLE_TYPES:
            raise exceptions.ValidationException(f'vehicle_type={vehicle_type!r} is not one of {VEHICLE_TYPES}')
        request_body = utils_data.parse_raw_body(request)
        request_body.pop('driver_id', None)
        request_body.pop('vehicle_type', None)
        return cls(driver_id=request.auth_result['user_id'], vehicle_type=vehicle_type, **request_body)

    @staticmethod
    @utils_auth.authenticate
    def endpoint_get_own_pricing(request) -> Response:
        utils_auth.require_role(request.auth_result, ROLE_DRIVER)
        pricing = get_driver_pricing(request.auth_result['user_id'])
        return Response(status_code=http200, body={'pricing': [item._to_ui() for item in pricing]})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_upsert(self) -> Response:
        self._create_db_record()
        return Response(status_code=http200, body={
            'message': 'Pricing was successfully saved',
            'pricing': self._to_ui(),
            'examples': {
                '5km': fare_preview(self.base_fare, self.per_km_rate, 5),
                '10km': fare_preview(self.base_fare, self.per_km_rate, 10)
            }
        })

    def fare_for_distance(self, distance_km) -> Decimal:
        return max(self.minimum_fare, fare_preview(self.base_fare, self.per_km_rate, distance_km))

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk.format(driver_id=self.driver_id), self.sk.format(vehicle_type=self.vehicle_type)

    def _to_dict(self):
        return {
            'driver_id': self.driver_id,
            'vehicle_type': self.vehicle_type,
            'base_fare': self.base_fare,
            'per_km_rate': self.per_km_rate,
            'minimum_fare': self.minimum_fare,
            'waiting_charge': self.waiting_charge,
            'date_updated': self.date_updated
        }

    def _to_ui(self):
        item = EntityBase._to_ui(self)
        item['is_default'] = self.is_default
        return item


def get_driver_pricing(driver_id) -> List[DriverPricing]:
    records = {
        record['vehicle_type']: record for record in utils_db.query_items_paged(
            Key('partkey').eq(keys_structure.driver_pricing_pk.format(driver_id=driver_id))
        )
    }
    pricing = []
    for vehicle_type in VEHICLE_TYPES:
        if vehicle_type in records:
            pricing.append(DriverPricing(**records[vehicle_type]))
        else:
            pricing.append(DriverPricing(driver_id, vehicle_type, is_default=True))
    return pricing


@utils_app.request_exception_handler
def endpoint_fare_preview(request) -> Response:
    body = utils_data.parse_raw_body(request)
    vehicle_type = body.get('vehicle_type')
    defaults = VEHICLE_DEFAULTS.get(vehicle_type, {})
    base_fare = body.get('base_fare', defaults.get('base_fare'))
    per_km_rate = body.get('per_km_rate', defaults.get('per_km_rate'))
    fare = fare_preview(base_fare, per_km_rate, body.get('distance_km'))
    logger.info(f'endpoint_fare_preview ::: {base_fare=} {per_km_rate=} fare={fare}')
    return Response(status_code=http200, body={'fare': fare})


@utils_app.request_exception_handler
def endpoint_errand_price(request) -> Response:
    body = utils_data.parse_raw_body(request)
    urgency = body.get('urgency', ERRAND_URGENCY_NORMAL)
    if body.get('service_type'):
        base_price = get_errand_service(body['service_type'])['base_price']
    else:
        base_price = body.get('base_price')
    return Response(status_code=http200, body={
        'base_price': utils_data.to_decimal(base_price),
        'urgency': urgency,
        'price': errand_price(base_price, urgency)
    })


def endpoint_errand_services() -> Response:
    services = [{'id': service_id, **service} for service_id, service in ERRAND_SERVICES.items()]
    return Response(status_code=http200, body={'services': services})


def endpoint_vehicle_types() -> Response:
    vehicle_types = [
        {'id': vehicle_type, **defaults, 'minimum_fare': default_minimum_fare(defaults['base_fare'])}
        for vehicle_type, defaults in VEHICLE_DEFAULTS.items()
    ]
    return Response(status_code=http200, body={'vehicle_types': vehicle_types})
