"""Storage access for QR code records.

Every read goes through `active()`, so archived (soft-deleted) rows are invisible
to lookups and listings while their scan history stays joinable.
"""
import logging
from typing import Dict, List, Optional
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from . import models, schemas
from .errors import EmptyUpdateError, SlugConflictError
from .utils import generate_slug

logger = logging.getLogger(__name__)

# Optional text columns: an empty string in a request clears the column
NULLABLE_FIELDS = (
    "name", "utm_source", "utm_medium", "utm_campaign",
    "utm_term", "utm_content", "impression_tag",
)


def active(db: Session):
    return db.query(models.QRCode).filter(models.QRCode.archived_at.is_(None))


def create_qrcode(db: Session, data: schemas.QRCreate, slug: Optional[str] = None) -> models.QRCode:
    """Insert a new record under a freshly generated slug.

    Slugs are not checked against storage beforehand; the unique index rejects a
    collision and that surfaces as SlugConflictError rather than an overwrite.
    """
    fields = {name: (getattr(data, name) or None) for name in NULLABLE_FIELDS}
    q = models.QRCode(slug=slug or generate_slug(), destination_url=data.destination_url, **fields)
    db.add(q)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Slug collision on create: {q.slug}")
        raise SlugConflictError(q.slug) from e
    db.refresh(q)
    return q


def get_qrcode(db: Session, qrcode_id: int) -> Optional[models.QRCode]:
    return active(db).filter(models.QRCode.id == qrcode_id).first()


def get_qrcode_by_slug(db: Session, slug: str) -> Optional[models.QRCode]:
    return active(db).filter(models.QRCode.slug == slug).first()


def list_qrcodes(db: Session) -> List[models.QRCode]:
    return active(db).order_by(models.QRCode.created_at.desc(), models.QRCode.id.desc()).all()


def updates_from(data: schemas.QRUpdate) -> Dict[str, object]:
    """Collect (column, value) pairs for the fields the caller actually sent."""
    updates = {}
    for name, value in data.model_dump(exclude_unset=True).items():
        if name in NULLABLE_FIELDS:
            value = value or None
        updates[name] = value
    return updates


def update_qrcode(db: Session, qrcode_id: int, data: schemas.QRUpdate) -> Optional[models.QRCode]:
    """Apply a partial update with a single parameterized UPDATE.

    Returns the refreshed record, or None if it does not exist or is archived.
    """
    updates = updates_from(data)
    if not updates:
        raise EmptyUpdateError("No fields to update")

    stmt = (
        update(models.QRCode)
        .where(models.QRCode.id == qrcode_id, models.QRCode.archived_at.is_(None))
        .values(**updates)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.commit()
    if result.rowcount == 0:
        return None
    return get_qrcode(db, qrcode_id)


def archive_qrcode(db: Session, qrcode_id: int) -> bool:
    """Soft-delete: stamp archived_at. The row and its scans are kept."""
    stmt = (
        update(models.QRCode)
        .where(models.QRCode.id == qrcode_id, models.QRCode.archived_at.is_(None))
        .values(archived_at=models.utc_now())
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.commit()
    return result.rowcount > 0
