import os

# chalicelib reads its configuration from the environment at import time
os.environ['GEN_TABLE_NAME'] = 'apanda-test'
os.environ['GEN_TABLE_STREAM_ARN'] = (
    'arn:aws:dynamodb:eu-central-1:000000000000:table/apanda-test/stream/2024-01-01T00:00:00.000')
os.environ['WEBSITES_FILES_BUCKET_NAME'] = 'apanda-test-files'
os.environ['FUNCTIONS_BASE_URL'] = 'http://localhost:8000/api'
os.environ['MPESA_CALLBACK_URL'] = 'http://localhost:8000/api/mpesa-webhook'
os.environ['STATIC_ORIGIN_URL'] = 'http://localhost:3000'
os.environ['JWT_SECRET'] = 'apanda-test-jwt-secret-0123456789abcdef'
os.environ['AWS_DEFAULT_REGION'] = 'eu-central-1'
os.environ['LOG_LEVEL'] = 'INFO'
os.environ.pop('REALTIME_TOPIC_ARN', None)
os.environ.pop('ENDPOINT_URL', None)

from utils.fixtures import gen_table, registered_users, tokens, chalice_client  # noqa: E402,F401
