from chalice import AuthResponse, AuthRoute

from chalicelib.constants.constants import ROLE_CUSTOMER, ROLE_SELLER, ROLE_DRIVER, ROLE_PROPERTY_SELLER, ROLE_ADMIN
from chalicelib.utils.auth import get_token_user_id, get_user_role
from chalicelib.utils.exceptions import AuthorizationException, NotAuthorizedException, ConfigurationError
from chalicelib.utils.logger import logger

ID_PATTERN = '*'

# Routes of a signed in user who did not create a profile yet
REGISTRATION_ROUTES = [
    AuthRoute(path='/users', methods=['GET', 'POST']),
]

# Routes of every registered user
COMMON_ROUTES = [
    AuthRoute(path='/users', methods=['GET', 'POST', 'PUT']),
    AuthRoute(path='/orders', methods=['GET', 'POST']),
    AuthRoute(path=f'/orders/{ID_PATTERN}', methods=['GET']),
    AuthRoute(path=f'/orders/{ID_PATTERN}/status', methods=['PUT']),
    AuthRoute(path=f'/orders/{ID_PATTERN}/pay', methods=['POST']),
    AuthRoute(path='/rides', methods=['GET', 'POST']),
    AuthRoute(path=f'/rides/{ID_PATTERN}', methods=['GET']),
    AuthRoute(path=f'/rides/{ID_PATTERN}/status', methods=['PUT']),
    AuthRoute(path='/errands', methods=['GET', 'POST']),
    AuthRoute(path='/transactions', methods=['GET']),
    AuthRoute(path='/transactions/stats', methods=['GET']),
    AuthRoute(path='/chats', methods=['GET', 'POST']),
    AuthRoute(path='/notifications', methods=['GET']),
    AuthRoute(path=f'/notifications/{ID_PATTERN}/read', methods=['PUT']),
    AuthRoute(path='/push-subscriptions', methods=['POST']),
    AuthRoute(path='/presence', methods=['GET', 'POST']),
    AuthRoute(path='/drivers/online', methods=['GET']),
    AuthRoute(path='/drivers', methods=['POST']),
    AuthRoute(path='/sellers', methods=['POST']),
]

ROLE_ROUTES = {
    ROLE_CUSTOMER: [],
    ROLE_SELLER: [
        AuthRoute(path='/sellers/me', methods=['GET']),
        AuthRoute(path='/restaurants', methods=['POST']),
        AuthRoute(path='/restaurants/mine', methods=['GET']),
        AuthRoute(path=f'/restaurants/{ID_PATTERN}', methods=['PUT', 'DELETE']),
        AuthRoute(path=f'/menu-items/{ID_PATTERN}', methods=['POST']),
        AuthRoute(path=f'/menu-items/{ID_PATTERN}/{ID_PATTERN}', methods=['PUT', 'DELETE']),
        AuthRoute(path='/products', methods=['POST']),
        AuthRoute(path=f'/products/{ID_PATTERN}', methods=['PUT', 'DELETE']),
        AuthRoute(path='/image-upload', methods=['POST']),
    ],
    ROLE_PROPERTY_SELLER: [
        AuthRoute(path='/properties', methods=['POST']),
        AuthRoute(path=f'/properties/{ID_PATTERN}', methods=['PUT', 'DELETE']),
        AuthRoute(path='/image-upload', methods=['POST']),
    ],
    ROLE_DRIVER: [
        AuthRoute(path='/drivers/me', methods=['GET', 'PUT']),
        AuthRoute(path='/drivers/me/online', methods=['PUT']),
        AuthRoute(path='/drivers/me/location', methods=['PUT']),
        AuthRoute(path='/drivers/me/pricing', methods=['GET']),
        AuthRoute(path=f'/drivers/me/pricing/{ID_PATTERN}', methods=['PUT']),
    ],
    ROLE_ADMIN: [
        AuthRoute(path=f'/users/{ID_PATTERN}/kyc', methods=['PUT']),
        AuthRoute(path='/users/all', methods=['GET']),
        AuthRoute(path='/drivers', methods=['GET']),
        AuthRoute(path=f'/drivers/{ID_PATTERN}/verification', methods=['PUT']),
        AuthRoute(path='/sellers', methods=['GET']),
        AuthRoute(path=f'/sellers/{ID_PATTERN}/verification', methods=['PUT']),
        AuthRoute(path=f'/restaurants/{ID_PATTERN}', methods=['PUT', 'DELETE']),
        AuthRoute(path=f'/menu-items/{ID_PATTERN}/{ID_PATTERN}', methods=['PUT', 'DELETE']),
        AuthRoute(path=f'/products/{ID_PATTERN}', methods=['PUT', 'DELETE']),
        AuthRoute(path=f'/properties/{ID_PATTERN}', methods=['PUT', 'DELETE']),
        AuthRoute(path='/transactions/all', methods=['GET']),
        AuthRoute(path='/notifications', methods=['POST']),
        AuthRoute(path='/admin/stats', methods=['GET']),
        AuthRoute(path='/image-upload', methods=['POST']),
    ]
}


def get_role_routes(role):
    if role is None:
        return REGISTRATION_ROUTES
    return [*COMMON_ROUTES, *ROLE_ROUTES.get(role, [])]


def role_authorizer(auth_request):
    """ Grants the routes of the caller's role, ownership is checked by the handlers """
    try:
        user_id = get_token_user_id(auth_request.token)
    except (AuthorizationException, NotAuthorizedException, ConfigurationError) as error:
        logger.warning(f'role_authorizer ::: access denied, {error}')
        return AuthResponse(routes=[], principal_id='')
    role = get_user_role(user_id)
    logger.info(f'role_authorizer ::: {user_id=} {role=}')
    return AuthResponse(routes=get_role_routes(role), principal_id=user_id, context={'role': role or ''})
