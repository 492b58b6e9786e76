import json
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from chalicelib.utils import exceptions


def replace_dict_key(item, orig_key, new_key):
    if orig_key in item:
        if new_key not in item:
            item[new_key] = item[orig_key]
        del item[orig_key]


def substitute_keys(dict_to_process: dict, base_keys: dict, opt_dict=None):
    if opt_dict is None:
        opt_dict = {}
    all_keys = {**base_keys, **opt_dict}
    for key, val in all_keys.items():
        if val:
            replace_dict_key(dict_to_process, key, val)
        elif key in dict_to_process.keys():
            dict_to_process.pop(key, None)


def substitute_records(records_to_process, base_keys: dict, opt_dict: dict = None):
    for i, _ in enumerate(records_to_process):
        substitute_keys(
            dict_to_process=records_to_process[i],
            base_keys=base_keys,
            opt_dict=opt_dict
        )


def parse_raw_body(chalice_request):
    request_raw_body = chalice_request.raw_body
    if request_raw_body:
        try:
            item = json.loads(request_raw_body)
        except ValueError as error:
            raise exceptions.ValidationException(f'Request body is not a valid JSON: {error}')
        if not isinstance(item, dict):
            raise exceptions.ValidationException('Request body must be a JSON object')
        return fix_values_from_ui(item=item)
    else:
        return {}


def fix_values_from_ui(item):
    """
    Remove keys with empty or None values and transform float to Decimal
    """
    if item.get('_values_from_ui_strategy') == 'delete_empty':
        list_to_cleanup = ['', None]
    else:
        list_to_cleanup = [None]
    item = cleanup_dict(item, list_to_cleanup)
    item.pop('_values_from_ui_strategy', None)
    result = json.dumps(item)
    return json.loads(result, parse_float=Decimal)


def cleanup_dict(item: dict, list_of_values: list):
    """ Remove None fields in dict with. Supports one nesting.  """

    def sub_clean(sub_item):
        return {
            key: value
            for key, value in sub_item.items()
            if value not in list_of_values
        }

    clean = {}
    for k, v in item.items():
        if isinstance(v, dict):
            nested = sub_clean(v)
            if len(nested.keys()) > 0:
                clean[k] = nested
        elif v not in list_of_values:
            clean[k] = v
    return clean


def to_decimal(value: Any, exp: str = '1.00') -> Optional[Decimal]:
    """
    Money and coordinates are kept as Decimal, DynamoDB does not accept floats.
    Returns None for missing values and booleans
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value)).quantize(Decimal(exp), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise exceptions.ValidationException(f'Value {value!r} is not a number')
