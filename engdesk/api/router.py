from fastapi import APIRouter
from engdesk.api import invoices, tables

router = APIRouter()
router.include_router(tables.router, prefix="/tables", tags=["Tables"])
router.include_router(invoices.router, prefix="/invoices", tags=["Invoices"])
