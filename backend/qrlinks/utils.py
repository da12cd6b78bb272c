import hashlib
import secrets
import string
from starlette.requests import Request


def generate_slug(length: int = 8) -> str:
    alphabet = string.ascii_letters + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def hash_ip(ip: str, salt: str) -> str:
    """One-way salted digest of a client IP; the raw address is never stored."""
    return hashlib.sha256((ip + salt).encode("utf-8")).hexdigest()


def client_ip(request: Request) -> str:
    # Behind a proxy the first X-Forwarded-For entry is the original client
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else ""


def redirect_url_for(request: Request, slug: str, public_base_url: str = None) -> str:
    base_url = public_base_url or str(request.base_url).rstrip('/')
    return f"{base_url}/r/{slug}"
