"""Scan analytics for a single QR code.

All sub-queries share one optional inclusive calendar-date range on
`date(scanned_at)`. Unique visitors are approximated by distinct IP hashes, so
shared IPs undercount and rotating IPs overcount; that is accepted.
"""
from datetime import date
from typing import Dict, Iterable, Optional
from sqlalchemy import Date, func
from sqlalchemy.orm import Session
from . import models, schemas

DAILY_SERIES_LIMIT = 30
BROWSER_LIMIT = 10


def _scan_day():
    return func.date(models.ScanEvent.scanned_at, type_=Date)


def _scans(db: Session, qrcode_id: int, start_date: Optional[date], end_date: Optional[date], *columns):
    q = db.query(*columns).filter(models.ScanEvent.qr_code_id == qrcode_id)
    # The range only applies when both ends are given
    if start_date and end_date:
        q = q.filter(_scan_day().between(start_date, end_date))
    return q


def _isoformat(day) -> str:
    return day.isoformat() if hasattr(day, "isoformat") else str(day)


def get_stats(
    db: Session,
    qrcode_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> schemas.StatsOut:
    E = models.ScanEvent
    args = (db, qrcode_id, start_date, end_date)

    total_scans = _scans(*args, func.count(E.id)).scalar() or 0
    unique_scans = _scans(*args, func.count(func.distinct(E.ip_hash))).scalar() or 0

    # Most recent N days first, then flipped to chronological order
    day = _scan_day().label("day")
    daily_rows = (
        _scans(*args, day, func.count(E.id).label("scans"), func.count(func.distinct(E.ip_hash)).label("unique_scans"))
        .group_by(day)
        .order_by(day.desc())
        .limit(DAILY_SERIES_LIMIT)
        .all()
    )
    daily_series = [
        schemas.DailyStat(date=_isoformat(r.day), scans=r.scans, unique_scans=r.unique_scans)
        for r in reversed(daily_rows)
    ]

    device_rows = _scans(*args, E.device_type, func.count(E.id)).group_by(E.device_type).all()
    device_breakdown = {device: count for device, count in device_rows}

    count = func.count(E.id).label("count")
    browser_rows = (
        _scans(*args, E.browser, count)
        .group_by(E.browser)
        .order_by(count.desc(), E.browser.asc())
        .limit(BROWSER_LIMIT)
        .all()
    )
    browser_breakdown = {browser: n for browser, n in browser_rows}

    return schemas.StatsOut(
        total_scans=total_scans,
        unique_scans=unique_scans,
        daily_series=daily_series,
        # Geo-IP lookup is not implemented
        top_countries=[],
        device_breakdown=device_breakdown,
        browser_breakdown=browser_breakdown,
    )


def scan_totals(db: Session, qrcode_ids: Iterable[int]) -> Dict[int, int]:
    """All-time scan count per QR code id, in one grouped query."""
    ids = list(qrcode_ids)
    if not ids:
        return {}
    E = models.ScanEvent
    rows = (
        db.query(E.qr_code_id, func.count(E.id))
        .filter(E.qr_code_id.in_(ids))
        .group_by(E.qr_code_id)
        .all()
    )
    return {qrcode_id: count for qrcode_id, count in rows}
