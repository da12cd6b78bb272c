from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from datetime import datetime, timezone
from .db import Base


def utc_now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class QRCode(Base):
    __tablename__ = "qr_codes"
    id = Column(Integer, primary_key=True, index=True)
    # Unique across archived rows too, so an archived slug is never handed out again
    slug = Column(String(32), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    destination_url = Column(Text, nullable=False)
    utm_source = Column(String(255), nullable=True)
    utm_medium = Column(String(255), nullable=True)
    utm_campaign = Column(String(255), nullable=True)
    utm_term = Column(String(255), nullable=True)
    utm_content = Column(String(255), nullable=True)
    impression_tag = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    archived_at = Column(DateTime, nullable=True, index=True)

    def __repr__(self):
        return f"<QRCode(id={self.id}, slug='{self.slug}', archived={self.archived_at is not None})>"


class ScanEvent(Base):
    __tablename__ = "scan_events"
    id = Column(Integer, primary_key=True, index=True)
    qr_code_id = Column(Integer, ForeignKey("qr_codes.id"), nullable=False, index=True)
    user_agent = Column(Text, nullable=False, default="")
    referrer = Column(Text, nullable=True)
    ip_hash = Column(String(64), nullable=False)
    device_type = Column(String(16), nullable=False)
    browser = Column(String(64), nullable=False)
    scanned_at = Column(DateTime, default=utc_now, nullable=False, index=True)
