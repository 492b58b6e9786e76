from typing import Tuple, List, Dict

from boto3.dynamodb.conditions import Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ROLE_SELLER, ROLE_ADMIN
from chalicelib.constants.status_codes import http200
from chalicelib.utils import auth as utils_auth, app as utils_app, data as utils_data, db as utils_db, exceptions
from chalicelib.utils.logger import logger


class Seller(EntityBase):
    pk = keys_structure.sellers_pk
    sk = keys_structure.sellers_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'user_id': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'shop_name': lambda x: isinstance(x, str) and len(x) > 0,
        'is_verified': lambda x: isinstance(x, bool),
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'shop_description': lambda x: isinstance(x, str),
        'shop_logo': lambda x: isinstance(x, str),
        'business_license': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.user_id: str = kwargs.get('user_id') or id_
        self.shop_name: str = kwargs.get('shop_name')
        self.shop_description: str = kwargs.get('shop_description')
        self.shop_logo: str = kwargs.get('shop_logo')
        self.business_license: str = kwargs.get('business_license')
        self.is_verified: bool = kwargs.get('is_verified', False)
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or now_iso()
        self.record_type = 'seller'

    @classmethod
    def init_by_id(cls, seller_id):
        c = cls(seller_id)
        c.__init__(**c._get_db_item())
        return c

    @classmethod
    @utils_auth.authenticate_class
    def init_request_onboarding(cls, request):
        logger.info("init_request_onboarding ::: started")
        utils_auth.require_role(request.auth_result, ROLE_SELLER)
        request_body = utils_data.parse_raw_body(request)
        for field in ('id', 'id_', 'user_id', 'is_verified'):
            request_body.pop(field, None)
        return cls(id_=request.auth_result['user_id'], **request_body)

    @classmethod
    @utils_auth.authenticate_class
    def init_request_own(cls, request):
        utils_auth.require_role(request.auth_result, ROLE_SELLER)
        return cls.init_by_id(request.auth_result['user_id'])

    @classmethod
    @utils_auth.authenticate_class
    def init_request_verification(cls, request, seller_id):
        utils_auth.require_role(request.auth_result, ROLE_ADMIN)
        is_verified = utils_data.parse_raw_body(request).get('is_verified')
        if not isinstance(is_verified, bool):
            raise exceptions.ValidationException('is_verified must be true or false')
        seller = cls.init_by_id(seller_id)
        seller.is_verified = is_verified
        return seller

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_onboarding(self) -> Response:
        self._create_db_record_if_absent()
        return Response(status_code=http200, body={
            'message': 'Application submitted, your seller account is under review', 'id': self.id_})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_get(self) -> Response:
        return Response(status_code=http200, body=self._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_update_verification(self) -> Response:
        self._update_db_record()
        return Response(status_code=http200, body={'id': self.id_, 'is_verified': self.is_verified})

    @staticmethod
    @utils_auth.authenticate
    def endpoint_get_all(request) -> Response:
        utils_auth.require_role(request.auth_result, ROLE_ADMIN)
        sellers: List[Dict] = [
            Seller(**record)._to_ui()
            for record in utils_db.query_items_paged(Key('partkey').eq(keys_structure.sellers_pk))
        ]
        return Response(status_code=http200, body={'sellers': sellers})

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(seller_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'user_id': self.user_id,
            'shop_name': self.shop_name,
            'shop_description': self.shop_description,
            'shop_logo': self.shop_logo,
            'business_license': self.business_license,
            'is_verified': self.is_verified,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }


def require_seller_profile(user_id) -> Seller:
    try:
        return Seller.init_by_id(user_id)
    except exceptions.RecordNotFound:
        raise exceptions.AccessDenied(f'user {user_id} has to complete seller onboarding first')
