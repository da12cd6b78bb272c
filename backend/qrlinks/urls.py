import ipaddress
import re
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

ALLOWED_SCHEMES = {"http", "https"}

UTM_FIELDS = ("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content")

# Characters a browser refuses in a host; they would end up in a Location header
FORBIDDEN_NETLOC_CHARS = set(' <>"^|`{}\\')
HOST_LABELS = re.compile(r"^[\w-]+(\.[\w-]+)*\.?$")


def _valid_host(parsed) -> bool:
    host = parsed.hostname
    if not host:
        return False
    if any(c in FORBIDDEN_NETLOC_CHARS or c.isspace() for c in parsed.netloc):
        return False
    if ":" in host:
        try:
            ipaddress.IPv6Address(host)
        except ValueError:
            return False
        return True
    return bool(HOST_LABELS.match(host))


def is_valid_url(url: Any) -> bool:
    """True only for absolute http(s) URLs with a well-formed host. Never raises."""
    if not isinstance(url, str):
        return False
    if any(ord(c) < 0x20 or ord(c) == 0x7f for c in url):
        return False
    try:
        parsed = urlsplit(url)
        parsed.port  # raises ValueError on a malformed port
    except ValueError:
        return False
    return parsed.scheme.lower() in ALLOWED_SCHEMES and _valid_host(parsed)


def _utm_value(utm: Any, field: str) -> Optional[str]:
    if isinstance(utm, Mapping):
        return utm.get(field)
    return getattr(utm, field, None)


def build_final_url(destination: str, utm: Any) -> str:
    """Return `destination` with every present, non-empty UTM field set as a query param.

    `utm` is a mapping or any object exposing the utm_* attributes (a QRCode row
    works). Existing params with the same name are overwritten in place; other
    params keep their order.
    """
    if not is_valid_url(destination):
        raise ValueError(f"Cannot build a URL from {destination!r}")

    parts = urlsplit(destination)
    params = parse_qsl(parts.query, keep_blank_values=True)
    changed = False

    for field in UTM_FIELDS:
        value = _utm_value(utm, field) if utm is not None else None
        if not value:
            continue
        changed = True
        replaced = False
        kept = []
        for key, existing in params:
            if key == field:
                if replaced:
                    continue
                kept.append((key, value))
                replaced = True
            else:
                kept.append((key, existing))
        if not replaced:
            kept.append((field, value))
        params = kept

    query = urlencode(params) if changed else parts.query
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", query, parts.fragment))
