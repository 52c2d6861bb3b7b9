"""Framework-agnostic request context.

``coerce_request_context`` turns the request objects handed to the
middleware (ASGI scopes, Starlette/FastAPI requests, WSGI environs,
Flask/Werkzeug requests, or a plain mapping) into a single immutable
``RequestContext`` that the fingerprint builder reads from.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

_Network = ipaddress.IPv4Network | ipaddress.IPv6Network


@dataclass(frozen=True, slots=True)
class RequestContext:
    """The parts of an HTTP request the middleware needs.

    ``headers`` keys are lowercase. ``query`` never includes the leading
    ``?``. ``ip`` is the resolved client address, after trusted proxies have
    been accounted for.
    """

    ip: str | None = None
    method: str | None = None
    host: str | None = None
    path: str | None = None
    query: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup; ``None`` when absent."""
        return self.headers.get(name.lower())


def _parse_proxies(proxies: Iterable[Any]) -> tuple[_Network, ...]:
    networks: list[_Network] = []
    for p in proxies:
        if not isinstance(p, str):
            continue
        try:
            networks.append(ipaddress.ip_network(p.strip(), strict=False))
        except ValueError:
            continue
    return tuple(networks)


def _strip_port(value: str) -> str:
    value = value.strip()
    if value.startswith("["):
        # [2001:db8::1]:443
        end = value.find("]")
        return value[1:end] if end != -1 else value
    if value.count(":") == 1:
        # 1.1.1.1:443
        return value.split(":", 1)[0]
    return value


def _parse_ip(value: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    try:
        return ipaddress.ip_address(_strip_port(value))
    except ValueError:
        return None


def _is_trusted(ip: str, networks: Sequence[_Network]) -> bool:
    addr = _parse_ip(ip)
    if addr is None:
        return False
    return any(addr in net for net in networks)


def extract_ip_from_headers(
    headers: Mapping[str, Any], proxies: Iterable[Any] = ()
) -> str | None:
    """Pick the client address out of ``X-Forwarded-For``.

    Multiple header instances (a list value) are joined in order. The list is
    walked from the right; entries that are not valid addresses or that fall
    inside a trusted proxy (literal IP or CIDR) are skipped. The first
    remaining entry is returned without any port suffix, or ``None`` when every
    entry was skipped.
    """
    raw = None
    for k, v in headers.items():
        if str(k).lower() == "x-forwarded-for":
            raw = v
            break
    if raw is None:
        return None
    if isinstance(raw, (list, tuple)):
        raw = ",".join(str(x) for x in raw)

    networks = _parse_proxies(proxies)
    for item in reversed(str(raw).split(",")):
        addr = _parse_ip(item)
        if addr is None:
            continue
        if any(addr in net for net in networks):
            continue
        return str(addr)
    return None


def resolve_client_ip(
    peer: str | None, headers: Mapping[str, Any], proxies: Iterable[Any] = ()
) -> str | None:
    """Return the client address for a request arriving from ``peer``.

    The peer address is used as-is unless it is a trusted proxy, in which
    case the address it forwarded on behalf of is taken from
    ``X-Forwarded-For``. A trusted peer that forwarded nothing usable is
    returned unchanged.
    """
    networks = _parse_proxies(proxies)
    if not peer or not networks or not _is_trusted(peer, networks):
        return peer
    forwarded = extract_ip_from_headers(headers, proxies)
    return forwarded or peer


def _headers_from_asgi(raw: Iterable[tuple[Any, Any]]) -> dict[str, str]:
    out: dict[str, str] = {}
    for k, v in raw:
        name = k.decode("latin-1") if isinstance(k, bytes) else str(k)
        value = v.decode("latin-1") if isinstance(v, bytes) else str(v)
        name = name.lower()
        if name in out:
            # Repeated headers fold into one comma-separated value.
            out[name] = f"{out[name]}, {value}"
        else:
            out[name] = value
    return out


def _headers_from_wsgi(environ: Mapping[str, Any]) -> dict[str, str]:
    out: dict[str, str] = {}
    for k, v in environ.items():
        if k.startswith("HTTP_"):
            out[k[5:].replace("_", "-").lower()] = str(v)
        elif k in ("CONTENT_TYPE", "CONTENT_LENGTH") and v:
            out[k.replace("_", "-").lower()] = str(v)
    return out


def _from_asgi(scope: Mapping[str, Any], proxies: Iterable[Any]) -> RequestContext:
    headers = _headers_from_asgi(scope.get("headers") or [])
    client = scope.get("client")
    peer = client[0] if client else None

    host = headers.get("host")
    if host is None and scope.get("server"):
        server_host, server_port = scope["server"][0], scope["server"][1]
        host = f"{server_host}:{server_port}" if server_port else str(server_host)

    qs = scope.get("query_string") or b""
    query = qs.decode("latin-1") if isinstance(qs, bytes) else str(qs)

    return RequestContext(
        ip=resolve_client_ip(peer, headers, proxies),
        method=scope.get("method"),
        host=host,
        path=scope.get("path"),
        query=query,
        headers=headers,
    )


def _from_wsgi(environ: Mapping[str, Any], proxies: Iterable[Any]) -> RequestContext:
    headers = _headers_from_wsgi(environ)

    host = headers.get("host")
    if host is None and environ.get("SERVER_NAME"):
        port = environ.get("SERVER_PORT")
        host = f"{environ['SERVER_NAME']}:{port}" if port else environ["SERVER_NAME"]

    path = (environ.get("SCRIPT_NAME") or "") + (environ.get("PATH_INFO") or "")

    return RequestContext(
        ip=resolve_client_ip(environ.get("REMOTE_ADDR"), headers, proxies),
        method=environ.get("REQUEST_METHOD"),
        host=host,
        path=path or "/",
        query=environ.get("QUERY_STRING") or "",
        headers=headers,
    )


def _from_mapping(data: Mapping[str, Any], proxies: Iterable[Any]) -> RequestContext:
    headers = {str(k).lower(): str(v) for k, v in (data.get("headers") or {}).items()}
    query = data.get("query")
    if isinstance(query, str):
        query = query.removeprefix("?")
    return RequestContext(
        ip=resolve_client_ip(data.get("ip"), headers, proxies),
        method=data.get("method"),
        host=data.get("host") or headers.get("host"),
        path=data.get("path"),
        query=query,
        headers=headers,
    )


def coerce_request_context(
    request: Any, *, proxies: Iterable[Any] = ()
) -> RequestContext:
    """Build a ``RequestContext`` from a supported request object.

    Supported inputs:

    - ``RequestContext``: returned unchanged.
    - ASGI HTTP scope dicts, and objects exposing one as ``.scope``
      (Starlette/FastAPI ``Request``).
    - WSGI environ dicts, and objects exposing one as ``.environ``
      (Flask/Werkzeug ``Request``).
    - Plain mappings with ``ip``, ``method``, ``host``, ``path``, ``query`` and
      ``headers`` keys.

    ``proxies`` lists trusted proxy addresses or CIDR ranges; see
    ``resolve_client_ip``.

    Raises:
        TypeError: If ``request`` is none of the above.
    """
    if isinstance(request, RequestContext):
        return request

    scope = getattr(request, "scope", None)
    if isinstance(scope, Mapping):
        return _from_asgi(scope, proxies)
    environ = getattr(request, "environ", None)
    if isinstance(environ, Mapping):
        return _from_wsgi(environ, proxies)

    if isinstance(request, Mapping):
        if request.get("type") in ("http", "websocket"):
            return _from_asgi(request, proxies)
        if "REQUEST_METHOD" in request:
            return _from_wsgi(request, proxies)
        return _from_mapping(request, proxies)

    raise TypeError(
        f"Unsupported request type {type(request).__name__!r}; pass an ASGI "
        "scope, a WSGI environ, a framework request or a RequestContext."
    )
