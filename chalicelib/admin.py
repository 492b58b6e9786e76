from decimal import Decimal
from typing import Dict, List

from chalice import Response

from chalicelib.constants.constants import ROLE_ADMIN
from chalicelib.constants.statuses import ORDER_PENDING, ORDER_DELIVERED, ORDER_COMPLETED
from chalicelib.constants.status_codes import http200
from chalicelib.drivers import get_all_drivers
from chalicelib.orders import get_all_orders
from chalicelib.users import get_all_users
from chalicelib.utils import auth as utils_auth, app as utils_app
from chalicelib.utils.logger import logger

COMPLETED_ORDER_STATUSES = (ORDER_DELIVERED, ORDER_COMPLETED)


def dashboard_stats(users: List[Dict], orders: List[Dict], drivers: List[Dict]) -> Dict:
    """
    Counters of the admin dashboard.
    Revenue is the sum of all order totals, active drivers are the ones online
    """
    return {
        'total_users': len(users),
        'total_orders': len(orders),
        'total_revenue': sum((Decimal(str(order.get('total_amount') or 0)) for order in orders), Decimal('0')),
        'active_drivers': len([driver for driver in drivers if driver.get('is_online')]),
        'pending_orders': len([order for order in orders if order.get('status_') == ORDER_PENDING]),
        'completed_orders': len([order for order in orders if order.get('status_') in COMPLETED_ORDER_STATUSES])
    }


@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_dashboard_stats(request) -> Response:
    utils_auth.require_role(request.auth_result, ROLE_ADMIN)
    stats = dashboard_stats(get_all_users(), get_all_orders(), get_all_drivers())
    logger.info(f'endpoint_get_dashboard_stats ::: {stats=}')
    return Response(status_code=http200, body=stats)
