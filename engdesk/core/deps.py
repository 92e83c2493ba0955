from fastapi import HTTPException, Request

from engdesk.services.data_access import DataStore
from engdesk.services.invoice_pdf import InvoicePdfRenderer

def get_data_store(request: Request) -> DataStore:
    store = getattr(request.app.state, "data_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Data store is not initialised")
    return store

def get_pdf_renderer(request: Request) -> InvoicePdfRenderer:
    renderer = getattr(request.app.state, "pdf_renderer", None)
    if renderer is None:
        raise HTTPException(status_code=503, detail="PDF renderer is not initialised")
    return renderer
