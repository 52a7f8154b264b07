import logging
import time
from typing import Any, Dict

from requests import Response, request
from requests.exceptions import ConnectionError, Timeout
from yarl import URL

logger = logging.getLogger(__name__)


class HttpService:
    """
    Makes HTTP requests to the gateway with retry logic
    """

    def __init__(
        self,
        base_url: str,
        timeout: int,
        retries: int,
        backoff: float,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.__timeout = timeout
        self.__retries = retries
        self.__backoff = backoff

    def do_request(
        self,
        method: str,
        sub_route: str | None = None,
        headers: Dict[str, str] | None = None,
        params: Dict[str, Any] | None = None,
    ) -> Response:
        """
        Perform an HTTP request. Redirects are not followed, a gateway that
        redirects to a login page has not authenticated the caller.
        """
        url = self.make_target_url(sub_route, params)

        for attempt in range(self.__retries):
            try:
                logger.debug(f"Making HTTP {method} request to {url}")
                return request(
                    method=method,
                    url=str(url),
                    headers=self.make_headers(headers),
                    timeout=self.__timeout,
                    allow_redirects=False,
                )
            except (
                ConnectionError,
                Timeout,
            ):
                logger.warning(f"Failed to make request to {url} on attempt {attempt}")

                if attempt < self.__retries - 1:
                    logger.info(f"Retrying in {self.__backoff * (2**attempt)} seconds")
                    time.sleep(self.__backoff * (2**attempt))

        logger.error(f"Failed to make request to {url} after {self.__retries} attempts")
        raise ConnectionError("Failed to make request after too many retries")

    @staticmethod
    def make_headers(extra: Dict[str, str] | None = None) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if extra:
            headers.update(extra)
        return headers

    def make_target_url(
        self, sub_route: str | None = None, params: Dict[str, Any] | None = None
    ) -> URL:
        url = self.base_url
        if sub_route:
            url = f"{url}/{sub_route.lstrip('/')}"

        target = URL(url)
        if params:
            return target.with_query(params)

        return target
