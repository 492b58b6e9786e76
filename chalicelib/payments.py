import os
from typing import Dict, Optional

import httpx

from chalicelib import mpesa
from chalicelib.constants.constants import MPESA_SUCCESS_RESPONSE_CODE
from chalicelib.utils import exceptions, http as utils_http
from chalicelib.utils.logger import logger, log_exception
from chalicelib.utils.phone import format_phone_number

NOTICE_SENT = {'title': 'Payment Request Sent', 'description': 'Please check your phone to complete the payment'}
NOTICE_FAILED_DEFAULT = 'Failed to initiate payment'


class PaymentResult:
    """
    Outcome of a payment initiation and the toast shown to the user about it
    """

    def __init__(self, success: bool, data: Optional[Dict] = None, error: Optional[str] = None,
                 notice: Optional[Dict] = None):
        self.success = success
        self.data = data
        self.error = error
        self.notice = notice

    def to_dict(self) -> Dict:
        return {'success': self.success, 'data': self.data, 'error': self.error, 'notice': self.notice}


def interpret_gateway_response(data: Dict) -> PaymentResult:
    if str(data.get('ResponseCode')) == MPESA_SUCCESS_RESPONSE_CODE:
        return PaymentResult(True, data=data, notice=NOTICE_SENT)
    description = data.get('ResponseDescription') or data.get('errorMessage') or NOTICE_FAILED_DEFAULT
    return PaymentResult(False, data=data, error=description,
                         notice={'title': 'Payment Failed', 'description': description})


def error_result(error: Exception) -> PaymentResult:
    log_exception(error, msg='payment initiation failed')
    return PaymentResult(False, error=str(error), notice={'title': 'Payment Error', 'description': str(error)})


def functions_base_url() -> str:
    base_url = os.environ.get('FUNCTIONS_BASE_URL')
    if not base_url:
        raise exceptions.ConfigurationError('FUNCTIONS_BASE_URL is not configured')
    return base_url.rstrip('/')


def pay_with_mpesa(phone: str, amount, order_id: str) -> PaymentResult:
    """
    Asks the deployed mpesa-webhook function to send an STK push.
    Never raises, failures come back as an unsuccessful PaymentResult
    """
    phone = format_phone_number(phone)
    try:
        with utils_http.get_http_client() as client:
            response = client.get(
                f'{functions_base_url()}/mpesa-webhook',
                params={'phone': phone, 'amount': str(amount), 'order_id': order_id}
            )
        data = utils_http.response_json(response)
    except (httpx.HTTPError, exceptions.ConfigurationError) as error:
        return error_result(error)
    logger.info(f'pay_with_mpesa ::: {order_id=} status={response.status_code} response={data}')
    if response.is_error:
        error = data.get('error') or f'HTTP error! status: {response.status_code}'
        return PaymentResult(False, data=data, error=error, notice={'title': 'Payment Error', 'description': error})
    return interpret_gateway_response(data)


def pay_order(phone: str, amount, order_id: str) -> PaymentResult:
    """ Same as pay_with_mpesa, but calls the gateway from this process """
    try:
        data = mpesa.initiate_stk_push(phone, amount, order_id)
    except (httpx.HTTPError, exceptions.PaymentGatewayError, exceptions.ConfigurationError) as error:
        return error_result(error)
    return interpret_gateway_response(data)
