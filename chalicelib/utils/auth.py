import functools
import os
from typing import Optional

import jwt
from chalice.app import Request

from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ROLE_ADMIN
from chalicelib.utils import exceptions as utils_exceptions, db as utils_db
from chalicelib.utils.logger import log_request, logger, bind_request_id

JWT_ALGORITHMS = ['HS256']
DEFAULT_JWT_AUDIENCE = 'authenticated'


def get_jwt_secret() -> str:
    secret = os.environ.get('JWT_SECRET')
    if not secret:
        raise utils_exceptions.ConfigurationError('JWT_SECRET is not configured')
    return secret


def get_token_from_header(authorization: Optional[str]) -> str:
    if not authorization:
        raise utils_exceptions.NotAuthorizedException('Authorization header is missing')
    if authorization.lower().startswith('bearer '):
        return authorization[len('bearer '):].strip()
    return authorization.strip()


def decode_token(authorization: Optional[str]) -> dict:
    token = get_token_from_header(authorization)
    try:
        return jwt.decode(
            token,
            get_jwt_secret(),
            algorithms=JWT_ALGORITHMS,
            audience=os.environ.get('JWT_AUDIENCE', DEFAULT_JWT_AUDIENCE)
        )
    except jwt.PyJWTError as error:
        logger.warning(f'decode_token ::: token is not valid, {error=}')
        raise utils_exceptions.AuthorizationException(f'Token is not valid: {error}')


def get_token_user_id(authorization: Optional[str]) -> str:
    claims = decode_token(authorization)
    user_id = claims.get('sub')
    if not user_id:
        raise utils_exceptions.AuthorizationException('Token has no subject')
    return user_id


def get_user_role(user_id) -> Optional[str]:
    """ Role of the registered user, None if the user has no profile yet """
    try:
        user_item = utils_db.get_db_item(
            partkey=keys_structure.users_pk,
            sortkey=keys_structure.users_sk.format(user_id=user_id)
        )
    except utils_exceptions.RecordNotFound:
        return None
    return user_item.get('role')


def get_auth_result(request: Request) -> dict:
    bind_request_id(request)
    log_request(request)
    user_id = get_token_user_id(request.headers.get('authorization'))
    return {'user_id': user_id, 'role': get_user_role(user_id)}


def authenticate(func):
    """
    Wrapper for functions which require user's authentication
    """

    @functools.wraps(func)
    def result_auth(*args, **kwargs):
        request = args[0]
        try:
            auth_result = get_auth_result(request)
        except Exception as err:
            logger.error(f"authenticate ::: {str(err)}")
            raise
        setattr(request, 'auth_result', auth_result)
        result = func(*args, **kwargs)
        logger.info(f'authenticate ::: SUCCESS, func.__name__ {func.__name__}')
        return result

    return result_auth


def authenticate_class(func):
    """
    Wrapper for class methods which require user's authentication
    """

    @functools.wraps(func)
    def result_auth(*args, **kwargs):
        request = args[1]
        try:
            auth_result = get_auth_result(request)
        except Exception as err:
            logger.error(f"authenticate_class ::: {str(err)}")
            raise
        setattr(request, 'auth_result', auth_result)
        return func(*args, **kwargs)

    return result_auth


def require_role(auth_result: dict, *roles):
    if auth_result.get('role') not in roles:
        raise utils_exceptions.AccessDenied(
            f"role={auth_result.get('role')} is not allowed, expected one of {roles}")


def require_registered(auth_result: dict):
    if auth_result.get('role') is None:
        raise utils_exceptions.AccessDenied('User profile has to be created first')


def require_owner_or_admin(auth_result: dict, owner_id):
    if auth_result.get('role') != ROLE_ADMIN and auth_result.get('user_id') != owner_id:
        raise utils_exceptions.AccessDenied(f"user {auth_result.get('user_id')} is not the owner of the resource")
