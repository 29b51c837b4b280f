from urllib.parse import urlencode

from fastapi import Request

from digital_download.core.config import settings


def _forwarded_pairs(request: Request) -> dict[str, str]:
    fwd = request.headers.get("forwarded")
    pairs: dict[str, str] = {}
    if not fwd:
        return pairs
    # Only the first (client-most) element matters.
    for part in fwd.split(",")[0].split(";"):
        if "=" in part:
            k, v = part.split("=", 1)
            pairs.setdefault(k.strip().lower(), v.strip().strip('"'))
    return pairs


def external_base_url(request: Request) -> str:
    if settings.PUBLIC_BASE_URL:
        return settings.PUBLIC_BASE_URL.rstrip("/")

    if settings.TRUST_PROXY_HEADERS:
        pairs = _forwarded_pairs(request)
        if pairs.get("proto") and pairs.get("host"):
            return f"{pairs['proto']}://{pairs['host']}".rstrip("/")

        proto = request.headers.get("x-forwarded-proto")
        host = request.headers.get("x-forwarded-host") or request.headers.get("host")
        if proto and host:
            return f"{proto}://{host}".rstrip("/")

    return str(request.base_url).rstrip("/")


def build_external_url(request: Request, path: str) -> str:
    base = external_base_url(request)
    if not path.startswith("/"):
        path = "/" + path
    return base + path


def client_address(request: Request) -> str | None:
    """Network address of the caller, as recorded in the download log."""
    if settings.TRUST_PROXY_HEADERS:
        pairs = _forwarded_pairs(request)
        if pairs.get("for"):
            return pairs["for"]
        xff = request.headers.get("x-forwarded-for")
        if xff:
            return xff.split(",")[0].strip()
    return request.client.host if request.client else None


def login_redirect_url(request: Request) -> str:
    return_to = build_external_url(request, request.url.path)
    if request.url.query:
        return_to = f"{return_to}?{request.url.query}"
    separator = "&" if "?" in settings.LOGIN_URL else "?"
    return f"{settings.LOGIN_URL}{separator}{urlencode({'return_to': return_to})}"
