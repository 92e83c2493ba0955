from __future__ import annotations

import logging
import traceback
from datetime import datetime, timezone
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

from engdesk.core.config import settings
from engdesk.core.deps import get_pdf_renderer
from engdesk.services.invoice_pdf import InvoicePdfRenderer, PdfRenderError

router = APIRouter()
logger = logging.getLogger("engdesk.invoices")


def _print_url(request: Request, invoice_id: str) -> str:
    base_url = (settings.APP_PUBLIC_URL or str(request.base_url)).rstrip("/")
    path = settings.INVOICE_PRINT_PATH.format(invoice_id=quote(invoice_id, safe=""))
    return f"{base_url}/{path.lstrip('/')}"


def _render_error_payload(exc: Exception) -> dict:
    cause = exc.cause if isinstance(exc, PdfRenderError) else exc
    payload = {
        "error": "Failed to generate PDF",
        "details": str(exc),
        "type": cause.__class__.__name__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if isinstance(exc, PdfRenderError):
        payload["stage"] = exc.stage.value
    if not settings.is_production:
        payload["stack"] = "".join(traceback.format_exception(type(cause), cause, cause.__traceback__))
    return payload


@router.get("/{invoice_id}/pdf")
async def invoice_pdf(
    invoice_id: str,
    request: Request,
    renderer: InvoicePdfRenderer = Depends(get_pdf_renderer),
):
    url = _print_url(request, invoice_id)
    try:
        pdf = await renderer.render(url)
    except Exception as exc:
        logger.error("invoice pdf failed invoice_id=%s error=%s", invoice_id, exc)
        return JSONResponse(_render_error_payload(exc), status_code=500)
    if not pdf:
        return JSONResponse(_render_error_payload(ValueError("Renderer returned an empty document")), status_code=500)

    file_name = quote(f"invoice-{invoice_id}.pdf")
    headers = {"Content-Disposition": f'attachment; filename="{file_name}"', "Cache-Control": "no-store"}
    return StreamingResponse(iter([pdf]), media_type="application/pdf", headers=headers)
