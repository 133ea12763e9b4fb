"""
In-memory stand-in for the DynamoDB Table resource.

Understands the calls chalicelib.utils.db makes: put/get/delete/update_item
and query with boto3 condition objects. Like the real resource it refuses
float values.
"""
from copy import deepcopy
from decimal import Decimal

from boto3.dynamodb.conditions import AttributeBase, ConditionBase


def _check_no_floats(value, path='Item'):
    if isinstance(value, float):
        raise TypeError(f'Float types are not supported. Use Decimal types instead ({path})')
    if isinstance(value, dict):
        for key, nested in value.items():
            _check_no_floats(nested, f'{path}.{key}')
    if isinstance(value, (list, tuple, set)):
        for index, nested in enumerate(value):
            _check_no_floats(nested, f'{path}[{index}]')


def _operand(value, item):
    if isinstance(value, AttributeBase):
        return item.get(value.name)
    return value


def _compare(left, right, op):
    if left is None or right is None:
        return False
    if isinstance(left, (int, Decimal)) and isinstance(right, (int, Decimal)):
        left, right = Decimal(left), Decimal(right)
    try:
        return op(left, right)
    except TypeError:
        return False


def evaluate(condition, item) -> bool:
    expression = condition.get_expression()
    operator, values = expression['operator'], expression['values']
    if operator == 'AND':
        return all(evaluate(value, item) for value in values)
    if operator == 'OR':
        return any(evaluate(value, item) for value in values)
    if operator == 'NOT':
        return not evaluate(values[0], item)
    if operator == 'attribute_exists':
        return values[0].name in item
    if operator == 'attribute_not_exists':
        return values[0].name not in item

    operands = [_operand(value, item) for value in values]
    if operator == '=':
        return operands[0] == operands[1]
    if operator == '<>':
        return operands[0] != operands[1]
    if operator == '<':
        return _compare(operands[0], operands[1], lambda a, b: a < b)
    if operator == '<=':
        return _compare(operands[0], operands[1], lambda a, b: a <= b)
    if operator == '>':
        return _compare(operands[0], operands[1], lambda a, b: a > b)
    if operator == '>=':
        return _compare(operands[0], operands[1], lambda a, b: a >= b)
    if operator == 'BETWEEN':
        return _compare(operands[0], operands[1], lambda a, b: a >= b) and \
            _compare(operands[0], operands[2], lambda a, b: a <= b)
    if operator == 'begins_with':
        return isinstance(operands[0], str) and operands[0].startswith(operands[1])
    if operator == 'contains':
        return operands[0] is not None and operands[1] in operands[0]
    if operator == 'IN':
        return operands[0] in operands[1]
    raise NotImplementedError(f'FakeTable does not support {operator=}')


class FakeTable:

    def __init__(self):
        self.items = {}
        self.calls = []

    @staticmethod
    def _key(key):
        return key['partkey'], key['sortkey']

    def put_item(self, Item):
        self.calls.append(('put_item', Item))
        _check_no_floats(Item)
        self.items[self._key(Item)] = deepcopy(Item)
        return {}

    def get_item(self, Key):
        self.calls.append(('get_item', Key))
        item = self.items.get(self._key(Key))
        return {'Item': deepcopy(item)} if item is not None else {}

    def delete_item(self, Key):
        self.calls.append(('delete_item', Key))
        self.items.pop(self._key(Key), None)
        return {}

    def update_item(self, Key, UpdateExpression, ExpressionAttributeValues=None, ExpressionAttributeNames=None,
                    ReturnValues=None):
        self.calls.append(('update_item', Key, UpdateExpression))
        names = ExpressionAttributeNames or {}
        values = ExpressionAttributeValues or {}
        _check_no_floats(values, 'ExpressionAttributeValues')
        item = self.items.setdefault(self._key(Key), {**Key})
        action, _, assignments = UpdateExpression.partition(' ')
        updated = {}
        for assignment in assignments.split(', '):
            if action == 'SET':
                name, value = assignment.split('=')
                attr = names.get(name.strip(), name.strip())
                item[attr] = deepcopy(values[value.strip()])
                updated[attr] = item[attr]
            elif action == 'REMOVE':
                name = assignment.strip()
                item.pop(names.get(name, name), None)
            else:
                raise NotImplementedError(f'FakeTable does not support {action=}')
        return {'Attributes': deepcopy(updated)}

    def query(self, KeyConditionExpression: ConditionBase, FilterExpression: ConditionBase = None,
              ScanIndexForward=True, **kwargs):
        self.calls.append(('query', KeyConditionExpression))
        items = [item for item in self.items.values() if evaluate(KeyConditionExpression, item)]
        if FilterExpression is not None:
            items = [item for item in items if evaluate(FilterExpression, item)]
        items.sort(key=lambda item: item['sortkey'], reverse=not ScanIndexForward)
        return {'Items': deepcopy(items)}

    # helpers for tests
    def records(self, partkey):
        return sorted((deepcopy(item) for (pk, _), item in self.items.items() if pk == partkey),
                      key=lambda item: item['sortkey'])

    def record(self, partkey, sortkey):
        return deepcopy(self.items.get((partkey, sortkey)))
