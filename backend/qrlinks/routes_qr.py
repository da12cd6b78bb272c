from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.orm import Session
from . import repository, schemas, stats
from .db import get_db
from .errors import EmptyUpdateError, SlugConflictError
from .qr_image import encode_png_data_uri
from .utils import redirect_url_for

router = APIRouter(prefix="/api/qrcodes", tags=["qrcodes"])


def _redirect_url(request: Request, slug: str) -> str:
    return redirect_url_for(request, slug, request.app.state.settings.public_base_url)


def _detail(request: Request, q) -> schemas.QRDetail:
    redirect_url = _redirect_url(request, q.slug)
    return schemas.QRDetail(
        **schemas.QROut.model_validate(q).model_dump(),
        redirect_url=redirect_url,
        qr_code_image=encode_png_data_uri(redirect_url),
    )


def _get_or_404(db: Session, qrcode_id: int):
    q = repository.get_qrcode(db, qrcode_id)
    if not q:
        raise HTTPException(status_code=404, detail="QR code not found")
    return q


@router.post("", status_code=201, response_model=schemas.QRDetail)
def create_qr(data: schemas.QRCreate, request: Request, db: Session = Depends(get_db)):
    try:
        q = repository.create_qrcode(db, data)
    except SlugConflictError:
        raise HTTPException(status_code=409, detail="Slug collision, please retry")
    return _detail(request, q)


@router.get("", response_model=List[schemas.QRListItem])
def list_qrcodes(request: Request, db: Session = Depends(get_db)):
    """List active QR codes, newest first, each with its all-time scan count."""
    results = repository.list_qrcodes(db)
    totals = stats.scan_totals(db, (r.id for r in results))
    return [
        schemas.QRListItem(
            **schemas.QROut.model_validate(r).model_dump(),
            redirect_url=_redirect_url(request, r.slug),
            total_scans=totals.get(r.id, 0),
        )
        for r in results
    ]


@router.get("/{qrcode_id}", response_model=schemas.QRDetail)
def get_qr(qrcode_id: int, request: Request, db: Session = Depends(get_db)):
    return _detail(request, _get_or_404(db, qrcode_id))


@router.put("/{qrcode_id}", response_model=schemas.QROut)
def update_qr(qrcode_id: int, data: schemas.QRUpdate, db: Session = Depends(get_db)):
    try:
        q = repository.update_qrcode(db, qrcode_id, data)
    except EmptyUpdateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not q:
        raise HTTPException(status_code=404, detail="QR code not found")
    return q


@router.delete("/{qrcode_id}", status_code=204)
def delete_qr(qrcode_id: int, db: Session = Depends(get_db)):
    """Archive a QR code. Its slug stops resolving but scan history is kept."""
    if not repository.archive_qrcode(db, qrcode_id):
        raise HTTPException(status_code=404, detail="QR code not found")
    return Response(status_code=204)


@router.get("/{qrcode_id}/stats", response_model=schemas.StatsOut)
def qrcode_stats(
    qrcode_id: int,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    """Scan statistics, optionally limited to an inclusive startDate..endDate range."""
    _get_or_404(db, qrcode_id)
    return stats.get_stats(db, qrcode_id, start_date, end_date)
