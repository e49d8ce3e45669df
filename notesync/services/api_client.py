"""Base API client with error handling and retry logic."""

import logging
import time

import requests
from requests.exceptions import ConnectionError, RequestException, Timeout

log = logging.getLogger("api_client")


def retry_call(func, *args, max_tries=3, delay=1, backoff=2, exceptions=(Exception,), sleep=time.sleep, **kwargs):
    """Call ``func`` until it succeeds or ``max_tries`` attempts raised ``exceptions``.

    The last exception is re-raised once the attempts are used up.
    """
    mtries, mdelay = max(1, max_tries), delay
    while True:
        try:
            return func(*args, **kwargs)
        except exceptions as e:
            mtries -= 1
            if mtries <= 0:
                raise
            log.warning(f"{getattr(func, '__name__', func)}: {e}, Retrying in {mdelay} seconds...")
            if mdelay:
                sleep(mdelay)
            mdelay *= backoff


class APIClient:
    """Base API client.

    Subclasses translate transport and HTTP failures into their own error
    types through ``connection_error`` and ``http_error``.
    """

    def __init__(self, base_url, timeout=10, session=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def connection_error(self, message):
        raise NotImplementedError

    def http_error(self, response):
        raise NotImplementedError

    def request(self, method, endpoint, headers=None, params=None, json=None):
        """Make an HTTP request and return the response, raising on failure."""
        url = endpoint if endpoint.startswith('http') else f"{self.base_url}{endpoint}"

        try:
            response = self.session.request(
                method=method,
                url=url,
                headers=headers,
                params=params,
                json=json,
                timeout=self.timeout
            )
        except (ConnectionError, Timeout) as e:
            raise self.connection_error(f"Connection error: {e}") from e
        except RequestException as e:
            raise self.connection_error(f"Request failed: {e}") from e

        if response.status_code >= 400:
            raise self.http_error(response)

        return response
