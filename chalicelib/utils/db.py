import functools
import os
import time
from random import uniform
from typing import Dict, List, Tuple

import boto3
from botocore.exceptions import ClientError

from chalicelib.utils import exceptions
from chalicelib.utils.boto_clients import aws_config_ddb
from chalicelib.utils.logger import logger, log_exception

# For safe db operations
RETRY_EXCEPTIONS = ('ProvisionedThroughputExceededException', 'ThrottlingException')
MAX_RETRIES = 8

_DB = None


def exp_db_backoff(func):
    """
        should be used for any atomic
        get/put/update/delete/query call in the code
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger.debug(f'{func.__name__}:: args={args}, kwargs={kwargs}')
        timeout_seed = uniform(0.05, 0.2)

        for retries in range(MAX_RETRIES):
            try:
                result = func(*args, **kwargs)
                logger.debug(f'{func.__name__}:: SUCCESS')
                return result
            except ClientError as e:
                if e.response.get('Error', {}).get('Code') not in RETRY_EXCEPTIONS:
                    log_exception(e, msg=f'Got exception while trying to {func.__name__}: ')
                    raise
                logger.warning(f'{func.__name__}:: throttled, attempt {retries + 1} of {MAX_RETRIES}')
                time.sleep(timeout_seed * 2 ** retries)

        raise exceptions.NumberOfRetriesExceeded(
            f"MaxNumber={MAX_RETRIES} of DB retries has exceeded"
        )

    return wrapper


def get_table(table_name: str):
    if os.environ.get('ENDPOINT_URL'):
        table = boto3.resource('dynamodb', endpoint_url=os.environ.get('ENDPOINT_URL')).Table(table_name)
    else:
        table = boto3.resource('dynamodb', config=aws_config_ddb).Table(table_name)

    for method_name in ('put_item', 'get_item', 'update_item', 'delete_item', 'query'):
        setattr(table, method_name, exp_db_backoff(getattr(table, method_name)))

    return table


def get_gen_table():
    global _DB
    if _DB is None:
        _DB = get_table(os.environ.get('GEN_TABLE_NAME'))
    return _DB


def put_db_record(item: dict, table=get_gen_table):
    table().put_item(Item=item)


def delete_db_record(key: dict, table=get_gen_table):
    table().delete_item(Key=key)


def update_db_record(key: dict, update_body: dict, allowed_attrs_to_update: list,
                     allowed_attrs_to_delete: list, table=get_gen_table):
    set_expr, expr_attr_values, remove_expr, set_names, remove_names = generate_update_expression(
        update_body=update_body,
        allowed_attrs_to_update=allowed_attrs_to_update,
        allowed_attrs_to_delete=allowed_attrs_to_delete
    )
    update_item_dict = {"Key": key, "ReturnValues": "UPDATED_NEW"}

    set_response = None
    if set_expr:
        set_item_dict = {
            **update_item_dict,
            "UpdateExpression": set_expr,
            "ExpressionAttributeValues": expr_attr_values,
            "ExpressionAttributeNames": set_names
        }
        set_response = table().update_item(**set_item_dict)

    remove_response = None
    if remove_expr:
        remove_item_dict = {
            **update_item_dict,
            "UpdateExpression": remove_expr,
            "ExpressionAttributeNames": remove_names
        }
        remove_response = table().update_item(**remove_item_dict)

    return set_response, remove_response


def generate_update_expression(update_body: dict, allowed_attrs_to_update: list, allowed_attrs_to_delete: list):
    """
    Generate expressions to update and delete attributes.
    if a key of update_body is empty - the attribute is deleted, else - attribute is updated.
    Attribute names always go through ExpressionAttributeNames as many of ours
    (name, status, role...) are DynamoDB reserved words.
    """
    expr_attr_values = {}
    set_names, remove_names = {}, {}
    set_parts, remove_parts = [], []
    for field in allowed_attrs_to_update:
        field_value = update_body.get(field, None)
        if field_value is None:
            continue
        # if field is in update_body but is equal to empty string, list etc. - delete field
        if field_value in ['', [], {}] and field in allowed_attrs_to_delete:
            remove_names[f"#{field}"] = field
            remove_parts.append(f"#{field}")
        else:
            set_names[f"#{field}"] = field
            expr_attr_values[f":{field}"] = field_value
            set_parts.append(f'#{field}=:{field}')

    set_expr = f'SET {", ".join(set_parts)}' if set_parts else None
    remove_expr = f'REMOVE {", ".join(remove_parts)}' if remove_parts else None
    return set_expr, expr_attr_values or None, remove_expr, set_names, remove_names


def get_db_item(partkey, sortkey, table=get_gen_table) -> Dict:
    result = table().get_item(
        Key={
            'partkey': partkey,
            'sortkey': sortkey
        }
    )

    if 'Item' in result:
        return result['Item']
    logger.warning(f"get_db_item ::: record partkey={partkey} sortkey={sortkey} not found")
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
        scan_forward=True
) -> Tuple[List[Dict], Dict]:
    kwargs = {'KeyConditionExpression': key_condition_expression, 'ScanIndexForward': scan_forward}
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

    resp = table().query(**kwargs)
    return resp['Items'], resp.get('LastEvaluatedKey')


def query_items_paged(key_condition_expression, filter_expression=None, projection_expression=None,
                      table=get_gen_table, index_name=None, expr_attr_names=None, scan_forward=True) -> List[Dict]:
    """ This method shall be used whenever you think the query will
        return more than 1mb of data at once"""
    all_items = []
    last_evaluated_key = None

    while True:
        items, last_evaluated_key = query_items_paginated(
            key_condition_expression,
            filter_expression=filter_expression,
            projection_expression=projection_expression,
            table=table,
            index_name=index_name,
            expr_attr_names=expr_attr_names,
            start_key=last_evaluated_key,
            scan_forward=scan_forward
        )
        all_items.extend(items)
        if last_evaluated_key is None:
            return all_items
