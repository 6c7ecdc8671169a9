"""Network access for the fetch router.

Production code fetches with ``requests``; tests inject their own
``Fetcher`` to count calls and simulate outages.
"""

from abc import ABC, abstractmethod
from typing import Optional

import requests

from ..errors import NetworkUnavailable
from ..models.http import Request, Response


class Fetcher(ABC):
    """Abstract base class for network fetchers."""

    @abstractmethod
    def fetch(self, request: Request) -> Response:
        """Fetch a resource from the network.

        HTTP error statuses are returned as responses, not raised.

        Raises:
            NetworkUnavailable: The request never got a response
        """
        pass


class RequestsFetcher(Fetcher):
    """Fetcher backed by a ``requests`` session."""

    DEFAULT_TIMEOUT_SECONDS = 10.0

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        """Initialize fetcher.

        Args:
            timeout: Seconds to wait for connect and read
            session: Session to reuse (a new one is created if None)
        """
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, request: Request) -> Response:
        try:
            resp = self.session.request(
                request.method,
                request.url,
                headers=request.headers or None,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NetworkUnavailable(request.url, str(e)) from e

        return Response(
            url=request.url,
            status=resp.status_code,
            headers=dict(resp.headers),
            body=resp.content,
        )

    def close(self) -> None:
        self.session.close()
