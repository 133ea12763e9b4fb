# key in the dict: new key name, None means the key is dropped
to_db = {
    'id': 'id_',
}

from_db = {
    'partkey': None,
    'sortkey': None,
    'id_': 'id',
}
