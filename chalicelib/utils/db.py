import functools
import os
import time
from random import uniform

import boto3 as boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from chalicelib.utils import exceptions
from chalicelib.utils.boto_clients import aws_config_ddb
from chalicelib.utils.logger import logger, log_exception

# For safe db operations
RETRY_EXCEPTIONS = ('ProvisionedThroughputExceededException', 'ThrottlingException')
CONDITIONAL_CHECK_FAILED = 'ConditionalCheckFailedException'
need_return_capacity = ('put_item', 'get_item', 'update_item', 'delete_item')
MAX_RETRIES = 15

_DB = None


def exp_db_backoff(func):
    """
        should be used for any atomic
        get/put item in the code
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger.debug(f'{func.__name__}:: args={args}, kwargs={kwargs}')
        if func.__name__ not in need_return_capacity:
            raise RuntimeError("This decorator only for DynamoDB methods")
        kwargs.update({'ReturnConsumedCapacity': 'TOTAL'})
        timeout_seed = uniform(0.1, 0.99)

        for retries in range(MAX_RETRIES):
            try:
                result = func(*args, **kwargs)
                logger.info(f'{func.__name__}:: SUCCESS')
                return result
            except ClientError as e:
                if e.response.get('Error', {}).get('Code') not in RETRY_EXCEPTIONS:
                    raise
                logger.warning(f'{func.__name__}:: throttled, retry number {retries + 1}')
                time.sleep(min(timeout_seed * 2 ** retries, 20))
            except Exception as e:
                log_exception(e, msg=f'Got exception while trying to {func.__name__}: ')
                raise

        raise exceptions.NumberOfRetriesExceeded(
            f"MaxNumber={MAX_RETRIES} of DB retries has exceeded"
        )

    return wrapper


def get_table(gl_table, table_name: str):
    if gl_table is None:
        if os.environ.get('ENDPOINT_URL'):
            gl_table = boto3.resource('dynamodb', endpoint_url=os.environ.get('ENDPOINT_URL')).Table(table_name)
        else:
            gl_table = boto3.resource('dynamodb', config=aws_config_ddb).Table(table_name)

        gl_table.put_item = exp_db_backoff(gl_table.put_item)
        gl_table.get_item = exp_db_backoff(gl_table.get_item)
        gl_table.update_item = exp_db_backoff(gl_table.update_item)
        gl_table.delete_item = exp_db_backoff(gl_table.delete_item)

    return gl_table


def get_gen_table():
    global _DB
    _DB = get_table(_DB, os.environ.get('GEN_TABLE_NAME'))
    return _DB


def is_conditional_check_failed(error: ClientError) -> bool:
    return error.response.get('Error', {}).get('Code') == CONDITIONAL_CHECK_FAILED


def put_db_record(item: dict, table=get_gen_table):
    table().put_item(Item=item)


def put_db_record_if_absent(item: dict, table=get_gen_table) -> bool:
    """
    Puts the item only if there is no item with the same key yet.
    Returns False when the item already exists
    """
    try:
        table().put_item(Item=item, ConditionExpression=Attr('partkey').not_exists())
    except ClientError as error:
        if is_conditional_check_failed(error):
            logger.warning(f"put_db_record_if_absent ::: partkey={item.get('partkey')} "
                           f"sortkey={item.get('sortkey')} already exists")
            return False
        raise
    return True


def delete_db_record(key: dict, table=get_gen_table):
    table().delete_item(Key=key)


def update_db_record(key: dict, update_body: dict, allowed_attrs_to_update: list,
                     allowed_attrs_to_delete: list, table=get_gen_table, condition_expression=None):
    """
    condition_expression is applied to the SET update, if the condition fails
    ConcurrentModification is raised and nothing is written
    """
    set_expr, expr_attr_values, remove_expr, expr_attr_names = generate_update_expression(
        update_body=update_body,
        allowed_attrs_to_update=allowed_attrs_to_update,
        allowed_attrs_to_delete=allowed_attrs_to_delete
    )
    update_item_dict = {"Key": key, "ReturnValues": "ALL_NEW", }

    set_response = None
    if set_expr:
        set_item_dict = {
            **update_item_dict,
            "UpdateExpression": set_expr,
            "ExpressionAttributeValues": expr_attr_values,
            "ExpressionAttributeNames": {name: attr for name, attr in expr_attr_names.items()
                                         if name[1:] in set_expr_fields(set_expr)}
        }
        if condition_expression is not None:
            set_item_dict['ConditionExpression'] = condition_expression
        try:
            set_response = table().update_item(**set_item_dict)
        except ClientError as error:
            if is_conditional_check_failed(error):
                raise exceptions.ConcurrentModification(
                    f'record partkey={key.get("partkey")} sortkey={key.get("sortkey")} was changed concurrently')
            raise

    remove_response = None
    if remove_expr:
        remove_item_dict = {
            **update_item_dict,
            "UpdateExpression": remove_expr,
            "ExpressionAttributeNames": {name: attr for name, attr in expr_attr_names.items()
                                         if name[1:] not in set_expr_fields(set_expr)}
        }
        remove_response = table().update_item(**remove_item_dict)

    return set_response, remove_response


def set_expr_fields(set_expr):
    if not set_expr:
        return []
    return [part.split('=')[0].strip().lstrip('#') for part in set_expr[len('SET '):].split(', ')]


def generate_update_expression(update_body: dict, allowed_attrs_to_update: list, allowed_attrs_to_delete: list):
    """
    Generate expressions to update and delete attributes.
    if a key of update_body is empty - the attribute is deleted, else - attribute is updated.
    Attribute names always go through ExpressionAttributeNames
    """
    expr_attr_values = {}
    expr_attr_names = {}
    set_expr = 'SET '
    remove_expr = 'REMOVE '
    return_value = [None, None, None, expr_attr_names]
    for field in allowed_attrs_to_update:
        field_value = update_body.get(field, None)
        if field_value is not None:
            expr_attr_names[f'#{field}'] = field
            # if field is in update_body but is equal to empty string, list etc. - delete field
            if field_value in ['', [], {}] and field in allowed_attrs_to_delete:
                remove_expr += f'#{field}, '
            else:
                # if field is in update_body and has a real value - update field
                expr_attr_values[f':{field}'] = update_body.get(field)
                set_expr += f'#{field}=:{field}, '
        else:
            continue

    if set_expr != 'SET ':
        return_value[0] = set_expr[:-2]
        return_value[1] = expr_attr_values

    if remove_expr != 'REMOVE ':
        return_value[2] = remove_expr[:-2]

    return return_value


def get_db_item(partkey, sortkey, table=get_gen_table):
    result = table().get_item(
        Key={
            'partkey': partkey,
            'sortkey': sortkey
        }
    )

    if result.__contains__('Item'):
        return result['Item']
    else:
        logger.error(f"get_db_item ::: record partkey={partkey} sortkey={sortkey} not found")
        raise exceptions.RecordNotFound(f'record partkey={partkey} sortkey={sortkey} not found')


def query_items_paginated(
        key_condition_expression,
        filter_expression=None,
        projection_expression=None,
        table=get_gen_table,
        index_name=None,
        expr_attr_names=None,
        limit=None,
        start_key=None,
        newest_first=False
):
    kwargs = {'KeyConditionExpression': key_condition_expression}
    if filter_expression:
        kwargs.update({'FilterExpression': filter_expression})

    if projection_expression:
        kwargs.update({'ProjectionExpression': projection_expression})

    if expr_attr_names:
        kwargs.update({'ExpressionAttributeNames': expr_attr_names})

    if limit:
        kwargs.update({'Limit': int(limit)})

    if index_name:
        kwargs.update({'IndexName': index_name})

    if start_key:
        kwargs.update({'ExclusiveStartKey': start_key})

    if newest_first:
        kwargs.update({'ScanIndexForward': False})

    resp = table().query(**kwargs)
    return resp['Items'], resp.get('LastEvaluatedKey')


def query_items_paged(key_condition_expression, filter_expression=None, projection_expression=None,
                      table=get_gen_table, index_name=None, expr_attr_names=None):
    """ This method shall be used whenever you think the query will
        return more than 1mb of data at once"""
    all_items = []
    items, last_evaluated_key = query_items_paginated(
        key_condition_expression,
        filter_expression=filter_expression,
        projection_expression=projection_expression,
        table=table,
        index_name=index_name,
        expr_attr_names=expr_attr_names
    )
    all_items.extend(items)

    while last_evaluated_key is not None:
        items, last_evaluated_key = query_items_paginated(
            key_condition_expression,
            filter_expression=filter_expression,
            projection_expression=projection_expression,
            table=table,
            index_name=index_name,
            expr_attr_names=expr_attr_names,
            start_key=last_evaluated_key
        )
        all_items.extend(items)

    return all_items
