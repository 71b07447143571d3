"""Static request-line routing table."""

from types import MappingProxyType
from typing import Mapping, NamedTuple

STATUS_OK = "HTTP/1.1 200 OK"
STATUS_NOT_FOUND = "HTTP/1.1 404 NOT FOUND"


class Route(NamedTuple):
    """Status line and template name a request line maps to."""

    status_line: str
    template_name: str


FALLBACK_ROUTE = Route(STATUS_NOT_FOUND, "404.html")

ROUTES: Mapping[str, Route] = MappingProxyType(
    {
        "GET / HTTP/1.1": Route(STATUS_OK, "index.html"),
    }
)


class Router:
    """Immutable mapping from whole request lines to routes.

    Keys are matched literally, so ``GET / HTTP/1.0`` or ``GET /?x HTTP/1.1``
    fall through to the 404 route.
    """

    __slots__ = ("_routes",)

    def __init__(self, routes: Mapping[str, Route]) -> None:
        self._routes = MappingProxyType(dict(routes))

    @classmethod
    def build(cls) -> "Router":
        return cls(ROUTES)

    def lookup(self, request_line: str) -> Route:
        """Return the route for ``request_line``, or the 404 fallback."""
        return self._routes.get(request_line, FALLBACK_ROUTE)

    def __len__(self) -> int:
        return len(self._routes)

    def __contains__(self, request_line: object) -> bool:
        return request_line in self._routes
