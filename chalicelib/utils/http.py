import os

import httpx

from chalicelib.constants.constants import DEFAULT_HTTP_TIMEOUT_SECONDS


def http_timeout() -> float:
    return float(os.environ.get('HTTP_TIMEOUT_SECONDS', DEFAULT_HTTP_TIMEOUT_SECONDS))


def get_http_client(**kwargs) -> httpx.Client:
    """ Client for outbound calls, always with a timeout (HTTP_TIMEOUT_SECONDS) """
    return httpx.Client(timeout=http_timeout(), **kwargs)


def response_json(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {'raw': response.text}
    return body if isinstance(body, dict) else {'data': body}
