# DynamoDB reserved words are stored with a trailing underscore
to_db = {
    'id': 'id_',
    'name': 'name_',
    'status': 'status_',
    'comment': 'comment_',
    'type': 'type_'
}

from_db = {
    'id_': 'id',
    'name_': 'name',
    'status_': 'status',
    'comment_': 'comment',
    'type_': 'type',
    'partkey': None,
    'sortkey': None
}
