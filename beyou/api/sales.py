"""
FastAPI endpoints for recording sales and the admin sales views
"""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from ..core.exceptions import BeYouError
from ..core.revalidation import page_revalidator
from ..core.security import require_admin
from ..schemas import (
    DashboardResponse,
    ProductResponse,
    RecentSaleItem,
    RecordSaleRequest,
    RecordSaleResponse,
    SaleResponse,
    SalesOverviewPoint,
)
from ..services import SalesService
from .deps import DbSession, parse_payload, read_json_body

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sales"], dependencies=[Depends(require_admin)])


@router.post("/products/record-sale", response_model=RecordSaleResponse)
async def record_sale(request: Request, db: DbSession):
    """
    Record a sale: deduct stock and append to the sale ledger atomically.

    400 invalid input / insufficient stock, 404 unknown product,
    500 anything else (transaction rolled back).
    """
    try:
        body = parse_payload(RecordSaleRequest, await read_json_body(request))
        sale, remaining = await SalesService.record_sale(db, body.product_id, body.quantity_sold)
    except BeYouError:
        raise
    except Exception as e:
        logger.error(f"❌ Error in record-sale: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"}
        )

    return RecordSaleResponse(sale=SaleResponse.from_sale(sale), remaining_stock=remaining)


@router.get("/admin/sales/recent", response_model=list[RecentSaleItem])
async def recent_sales(db: DbSession, limit: Annotated[int, Query(ge=1, le=100)] = 10):
    return await SalesService.recent_sales(db, limit=limit)


@router.get("/admin/sales/overview", response_model=list[SalesOverviewPoint])
async def sales_overview(db: DbSession, days: Annotated[int, Query(ge=1, le=365)] = 30):
    """Daily sales totals for the last `days` days"""
    return await SalesService.sales_overview(db, days=days)


@router.get("/admin/dashboard", response_model=DashboardResponse)
async def dashboard(db: DbSession):
    data = await SalesService.dashboard(db)
    recent = data["recent_product"]
    return DashboardResponse(
        total_products=data["total_products"],
        zero_quantity_products=[ProductResponse.from_product(p) for p in data["zero_quantity_products"]],
        recent_product=ProductResponse.from_product(recent) if recent else None,
        orders_today=data["orders_today"],
        sales_today_amount=data["sales_today_amount"],
    )


@router.get("/admin/revalidation")
async def stale_pages():
    """Pages marked stale by recent mutations"""
    return {
        "stale_paths": {
            path: marked_at.isoformat() for path, marked_at in page_revalidator.snapshot().items()
        }
    }
