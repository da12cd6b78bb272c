"""Third-party impression tags (DCM-style <img>/<iframe>/<script> markup or a bare URL).

The redirect pipeline pulls a pixel URL out of the stored tag, cache-busts it and
renders a small HTML page that fires the pixel before a meta-refresh redirect.
A tag we cannot read still yields a working redirect page, just without a pixel.
"""
import re
import time
from html import escape
from typing import Optional

SRC_PATTERN = re.compile(r"""SRC\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
TIMESTAMP_PATTERN = re.compile(re.escape("[timestamp]"), re.IGNORECASE)

REDIRECT_DELAY_SECONDS = 1

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Redirecting...</title>
  <meta name="robots" content="noindex">
  <meta http-equiv="refresh" content="{delay};url={final_url}">
</head>
<body>
  <p>Redirecting...</p>
  {pixel}
</body>
</html>"""

PIXEL_TEMPLATE = '<img src="{src}" width="1" height="1" style="display:none" alt="" />'


def extract_tracking_url(tag: Optional[str]) -> Optional[str]:
    """Return the trackable URL inside `tag`, or None if there isn't one."""
    if not tag:
        return None
    match = SRC_PATTERN.search(tag)
    if match:
        return match.group(1)
    stripped = tag.strip()
    if stripped.startswith("http://") or stripped.startswith("https://"):
        return stripped
    return None


def process_tracking_url(url: str, now_ms: Optional[int] = None) -> str:
    """Replace every [timestamp] macro (any case) with one epoch-milliseconds value."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    stamp = str(now_ms)
    return TIMESTAMP_PATTERN.sub(lambda _m: stamp, url)


def render_tracking_page(final_url: str, tag: Optional[str]) -> str:
    tracking_url = extract_tracking_url(tag)
    pixel = ""
    if tracking_url:
        pixel = PIXEL_TEMPLATE.format(src=escape(process_tracking_url(tracking_url), quote=True))
    return PAGE_TEMPLATE.format(
        delay=REDIRECT_DELAY_SECONDS,
        final_url=escape(final_url, quote=True),
        pixel=pixel,
    )
