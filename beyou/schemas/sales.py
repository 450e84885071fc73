"""
Pydantic schemas for sale recording and sales reporting
"""
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field, StrictInt

from .catalog import ProductResponse


class RecordSaleRequest(BaseModel):
    """Sale entry form payload (camelCase on the wire)"""
    product_id: Optional[str] = Field(None, alias="productId")
    quantity_sold: Optional[StrictInt] = Field(None, alias="quantitySold")

    class Config:
        populate_by_name = True


class SaleResponse(BaseModel):
    id: str
    product_id: str
    quantity_sold: int
    sale_price_per_unit: float
    total_amount: float
    sale_date: datetime

    @classmethod
    def from_sale(cls, sale) -> "SaleResponse":
        return cls(
            id=sale.id,
            product_id=sale.product_id,
            quantity_sold=sale.quantity_sold,
            sale_price_per_unit=float(sale.sale_price_per_unit),
            total_amount=float(sale.total_amount),
            sale_date=sale.sale_date,
        )


class RecordSaleResponse(BaseModel):
    message: str = "Sale recorded and stock updated successfully"
    sale: SaleResponse
    remaining_stock: int


class RecentSaleItem(BaseModel):
    id: str
    product_name: str
    quantity: int
    amount: float
    date: datetime


class SalesOverviewPoint(BaseModel):
    date: date
    total: float


class DashboardResponse(BaseModel):
    total_products: int
    zero_quantity_products: list[ProductResponse]
    recent_product: Optional[ProductResponse]
    orders_today: int
    sales_today_amount: float
