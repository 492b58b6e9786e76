from typing import Tuple, List, Dict

from boto3.dynamodb.conditions import Key, Attr
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ROLE_CUSTOMER, ROLE_ADMIN, USER_ROLES
from chalicelib.constants.status_codes import http200
from chalicelib.constants.statuses import KYC_PENDING, KYC_STATUSES
from chalicelib.utils import auth as utils_auth, app as utils_app, data as utils_data, db as utils_db, exceptions
from chalicelib.utils.logger import logger
from chalicelib.utils.phone import normalize_phone_number

SELF_SERVICE_ROLES = tuple(role for role in USER_ROLES if role != ROLE_ADMIN)


class User(EntityBase):
    pk = keys_structure.users_pk
    sk = keys_structure.users_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'role': lambda x: x in USER_ROLES,
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'kyc_status': lambda x: x in KYC_STATUSES,
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'full_name': lambda x: isinstance(x, str),
        'phone': lambda x: isinstance(x, str),
        'email': lambda x: isinstance(x, str),
        'avatar_url': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.role: str = kwargs.get('role')
        self.full_name: str = kwargs.get('full_name')
        self.phone: str = kwargs.get('phone')
        self.email: str = kwargs.get('email')
        self.avatar_url: str = kwargs.get('avatar_url')
        self.kyc_status: str = kwargs.get('kyc_status') or KYC_PENDING
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or now_iso()
        self.record_type = 'user'

    @classmethod
    def init_by_id(cls, id_):
        logger.info("init_by_id ::: started")
        c = cls(id_)
        c.__init__(**c._get_db_item())
        return c

    @classmethod
    @utils_auth.authenticate_class
    def init_request_user(cls, request):
        logger.info("init_request_user ::: started")
        return cls.init_by_id(request.auth_result['user_id'])

    @classmethod
    @utils_auth.authenticate_class
    def init_request_create(cls, request):
        logger.info("init_request_create ::: started")
        request_body = utils_data.parse_raw_body(request)
        role = request_body.pop('role', ROLE_CUSTOMER)
        if role not in SELF_SERVICE_ROLES:
            raise exceptions.AccessDenied(f'role={role} can not be chosen at sign up')
        if request_body.get('phone'):
            request_body['phone'] = normalize_phone_number(request_body['phone'])
        for field in ('kyc_status', 'date_created', 'date_updated'):
            request_body.pop(field, None)
        request_body.pop('id', None)
        request_body.pop('id_', None)
        return cls(id_=request.auth_result['user_id'], role=role, **request_body)

    @classmethod
    @utils_auth.authenticate_class
    def init_request_update(cls, request):
        logger.info("init_request_update ::: started")
        request_body = utils_data.parse_raw_body(request)
        if request_body.get('phone'):
            request_body['phone'] = normalize_phone_number(request_body['phone'])
        user = cls.init_by_id(request.auth_result['user_id'])
        for field in cls.optional_fields_validation:
            if field in request_body:
                setattr(user, field, request_body[field])
        return user

    @classmethod
    @utils_auth.authenticate_class
    def init_request_kyc_update(cls, request, user_id):
        logger.info("init_request_kyc_update ::: started")
        utils_auth.require_role(request.auth_result, ROLE_ADMIN)
        kyc_status = utils_data.parse_raw_body(request).get('kyc_status')
        if kyc_status not in KYC_STATUSES:
            raise exceptions.ValidationException(f'kyc_status must be one of {KYC_STATUSES}')
        user = cls.init_by_id(user_id)
        user.kyc_status = kyc_status
        return user

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_create_user(self) -> Response:
        self._create_db_record_if_absent()
        return Response(status_code=http200, body={'message': 'User was successfully created', 'id': self.id_})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_get_user(self) -> Response:
        return Response(status_code=http200, body=self._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_update_user(self) -> Response:
        self._update_db_record()
        return Response(status_code=http200, body={'message': 'User was successfully updated', 'id': self.id_})

    @staticmethod
    @utils_auth.authenticate
    def endpoint_get_users(request) -> Response:
        logger.info("endpoint_get_users ::: started")
        utils_auth.require_role(request.auth_result, ROLE_ADMIN)
        role = (request.query_params or {}).get('role')
        user_db_records: list = utils_db.query_items_paged(
            Key('partkey').eq(keys_structure.users_pk),
            filter_expression=Attr('role').eq(role) if role else None
        )
        users: List[Dict] = [User(**record)._to_ui() for record in user_db_records]
        return Response(status_code=http200, body={'users': users})

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(user_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'role': self.role,
            'full_name': self.full_name,
            'phone': self.phone,
            'email': self.email,
            'avatar_url': self.avatar_url,
            'kyc_status': self.kyc_status,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }


def get_all_users() -> List[Dict]:
    return utils_db.query_items_paged(Key('partkey').eq(keys_structure.users_pk))
