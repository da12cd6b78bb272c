from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from sqlalchemy.orm import Session
from . import repository
from .db import get_db
from .tracking import render_tracking_page
from .urls import build_final_url
from .utils import client_ip

router = APIRouter()


@router.get("/r/{slug}")
def redirect_slug(slug: str, request: Request, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    q = repository.get_qrcode_by_slug(db, slug)
    if not q:
        return PlainTextResponse("QR code not found", status_code=404)

    # Recorded after the response is sent; failures are logged by the recorder
    background_tasks.add_task(
        request.app.state.scan_recorder.record_safely,
        q.id,
        request.headers.get("user-agent", ""),
        request.headers.get("referer"),
        client_ip(request),
    )

    final_url = build_final_url(q.destination_url, q)

    # A meta refresh (not a 3xx) lets the browser fire the impression pixel first
    if q.impression_tag:
        return HTMLResponse(render_tracking_page(final_url, q.impression_tag))
    return RedirectResponse(url=final_url, status_code=302)
