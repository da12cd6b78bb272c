import logging
from typing import Optional, Tuple
from user_agents import parse as parse_ua
from . import models
from .utils import hash_ip

logger = logging.getLogger(__name__)

DEVICE_MOBILE = "mobile"
DEVICE_TABLET = "tablet"
DEVICE_DESKTOP = "desktop"
UNKNOWN_BROWSER = "Unknown"


def parse_user_agent(user_agent: Optional[str]) -> Tuple[str, str]:
    """Classify a user agent into (device_type, browser)."""
    ua = parse_ua(user_agent or "")
    if ua.is_mobile:
        device_type = DEVICE_MOBILE
    elif ua.is_tablet:
        device_type = DEVICE_TABLET
    else:
        device_type = DEVICE_DESKTOP
    browser = ua.browser.family
    # ua-parser reports "Other" when it recognizes nothing
    if not browser or browser == "Other":
        browser = UNKNOWN_BROWSER
    return device_type, browser


class ScanRecorder:
    """Writes one ScanEvent per resolved redirect, on its own session.

    Scheduled as a background task so the redirect response never waits on it.
    Delivery is best effort: a failed write is logged and dropped, never retried.
    """

    def __init__(self, session_factory, salt: str):
        self.session_factory = session_factory
        self.salt = salt

    def record(self, qr_code_id: int, user_agent: str, referrer: Optional[str], ip: str) -> models.ScanEvent:
        device_type, browser = parse_user_agent(user_agent)
        event = models.ScanEvent(
            qr_code_id=qr_code_id,
            user_agent=user_agent or "",
            referrer=referrer or None,
            ip_hash=hash_ip(ip or "", self.salt),
            device_type=device_type,
            browser=browser,
        )
        db = self.session_factory()
        try:
            db.add(event)
            db.commit()
            db.refresh(event)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
        return event

    def record_safely(self, qr_code_id: int, user_agent: str, referrer: Optional[str], ip: str) -> None:
        try:
            self.record(qr_code_id, user_agent, referrer, ip)
        except Exception:
            logger.exception(f"Error recording scan for QR code {qr_code_id}")
