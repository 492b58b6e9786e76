from decimal import Decimal
from typing import Tuple, List, Dict

from boto3.dynamodb.conditions import Key, Attr
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ROLE_DRIVER, ROLE_ADMIN, VEHICLE_TYPES
from chalicelib.constants.status_codes import http200
from chalicelib.utils import auth as utils_auth, app as utils_app, data as utils_data, db as utils_db, exceptions
from chalicelib.utils.geo import is_valid_coordinate
from chalicelib.utils.logger import logger

COORDINATE_EXP = '1.000000'


class Driver(EntityBase):
    """
    Driver profile of a user with the driver role, keyed by the user id.
    Location updates of this record are what the drivers-location channel streams
    """
    pk = keys_structure.drivers_pk
    sk = keys_structure.drivers_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'user_id': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'vehicle_type': lambda x: x in VEHICLE_TYPES,
        'vehicle_number': lambda x: isinstance(x, str) and len(x) > 0,
        'license_number': lambda x: isinstance(x, str) and len(x) > 0,
        'is_online': lambda x: isinstance(x, bool),
        'is_verified': lambda x: isinstance(x, bool),
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'vehicle_model': lambda x: isinstance(x, str),
        'vehicle_documents': lambda x: isinstance(x, list),
        'current_latitude': lambda x: isinstance(x, Decimal) and -90 <= x <= 90,
        'current_longitude': lambda x: isinstance(x, Decimal) and -180 <= x <= 180,
        'location_updated_at': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.user_id: str = kwargs.get('user_id') or id_
        self.vehicle_type: str = kwargs.get('vehicle_type')
        self.vehicle_model: str = kwargs.get('vehicle_model')
        self.vehicle_number: str = kwargs.get('vehicle_number')
        self.license_number: str = kwargs.get('license_number')
        self.vehicle_documents: list = kwargs.get('vehicle_documents', [])
        self.is_online: bool = kwargs.get('is_online', False)
        self.is_verified: bool = kwargs.get('is_verified', False)
        self.current_latitude: Decimal = utils_data.to_decimal(kwargs.get('current_latitude'), COORDINATE_EXP)
        self.current_longitude: Decimal = utils_data.to_decimal(kwargs.get('current_longitude'), COORDINATE_EXP)
        self.location_updated_at: str = kwargs.get('location_updated_at')
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or now_iso()
        self.record_type = 'driver'

    @classmethod
    def init_by_id(cls, driver_id):
        c = cls(driver_id)
        c.__init__(**c._get_db_item())
        return c

    @classmethod
    @utils_auth.authenticate_class
    def init_request_onboarding(cls, request):
        logger.info("init_request_onboarding ::: started")
        utils_auth.require_role(request.auth_result, ROLE_DRIVER)
        request_body = utils_data.parse_raw_body(request)
        for field in ('id', 'id_', 'user_id', 'is_online', 'is_verified', 'current_latitude', 'current_longitude'):
            request_body.pop(field, None)
        return cls(id_=request.auth_result['user_id'], **request_body)

    @classmethod
    @utils_auth.authenticate_class
    def init_request_own(cls, request):
        utils_auth.require_role(request.auth_result, ROLE_DRIVER)
        return cls.init_by_id(request.auth_result['user_id'])

    @classmethod
    @utils_auth.authenticate_class
    def init_request_verification(cls, request, driver_id):
        utils_auth.require_role(request.auth_result, ROLE_ADMIN)
        is_verified = utils_data.parse_raw_body(request).get('is_verified')
        if not isinstance(is_verified, bool):
            raise exceptions.ValidationException('is_verified must be true or false')
        driver = cls.init_by_id(driver_id)
        driver.is_verified = is_verified
        return driver

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_onboarding(self) -> Response:
        self._create_db_record_if_absent()
        return Response(status_code=http200, body={
            'message': 'Application submitted, your driver account is under review', 'id': self.id_})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_get(self) -> Response:
        return Response(status_code=http200, body=self._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_update_profile(self, request_body: dict) -> Response:
        for field in ('vehicle_type', 'vehicle_model', 'vehicle_number', 'license_number', 'vehicle_documents'):
            if field in request_body:
                setattr(self, field, request_body[field])
        self._update_db_record()
        return Response(status_code=http200, body={'message': 'Driver profile was successfully updated', 'id': self.id_})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_set_online(self, is_online) -> Response:
        if not isinstance(is_online, bool):
            raise exceptions.ValidationException('is_online must be true or false')
        self.is_online = is_online
        self._update_db_record()
        message = 'You are now online and available for rides' if is_online else 'You are now offline'
        return Response(status_code=http200, body={'message': message, 'is_online': self.is_online})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_update_location(self, latitude, longitude) -> Response:
        if not is_valid_coordinate(latitude, longitude):
            raise exceptions.ValidationException(f'Coordinates {latitude=}, {longitude=} are not valid')
        self.current_latitude = utils_data.to_decimal(latitude, COORDINATE_EXP)
        self.current_longitude = utils_data.to_decimal(longitude, COORDINATE_EXP)
        self.location_updated_at = now_iso()
        self._update_db_record()
        return Response(status_code=http200, body={
            'current_latitude': self.current_latitude, 'current_longitude': self.current_longitude})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_update_verification(self) -> Response:
        self._update_db_record()
        return Response(status_code=http200, body={'id': self.id_, 'is_verified': self.is_verified})

    @staticmethod
    @utils_auth.authenticate
    def endpoint_get_online(request) -> Response:
        utils_auth.require_registered(request.auth_result)
        drivers: List[Dict] = [Driver(**record)._to_ui() for record in get_online_drivers()]
        return Response(status_code=http200, body={'drivers': drivers})

    @staticmethod
    @utils_auth.authenticate
    def endpoint_get_all(request) -> Response:
        utils_auth.require_role(request.auth_result, ROLE_ADMIN)
        drivers: List[Dict] = [Driver(**record)._to_ui() for record in get_all_drivers()]
        return Response(status_code=http200, body={'drivers': drivers})

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(driver_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'user_id': self.user_id,
            'vehicle_type': self.vehicle_type,
            'vehicle_model': self.vehicle_model,
            'vehicle_number': self.vehicle_number,
            'license_number': self.license_number,
            'vehicle_documents': self.vehicle_documents,
            'is_online': self.is_online,
            'is_verified': self.is_verified,
            'current_latitude': self.current_latitude,
            'current_longitude': self.current_longitude,
            'location_updated_at': self.location_updated_at,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }


def get_all_drivers() -> List[Dict]:
    return utils_db.query_items_paged(Key('partkey').eq(keys_structure.drivers_pk))


def get_online_drivers() -> List[Dict]:
    return utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.drivers_pk),
        filter_expression=Attr('is_online').eq(True) & Attr('is_verified').eq(True)
    )
