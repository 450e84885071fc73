"""
Sale recording with transactional stock deduction, plus sales reporting
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    BeYouError,
    InsufficientStockError,
    InvalidInputError,
    NotFoundError,
)
from ..core.revalidation import PRODUCT_PAGES, page_revalidator
from ..models import Product, Sale, utcnow
from .products import ProductService

logger = logging.getLogger(__name__)


@dataclass
class SalesSummary:
    orders: int
    amount: Decimal


class SalesService:
    """Business logic for the sale ledger"""

    @staticmethod
    async def record_sale(
        session: AsyncSession,
        product_id: Optional[str],
        quantity_sold: Optional[int]
    ) -> Tuple[Sale, int]:
        """
        Deduct stock and append a sale, atomically.

        Flow (single transaction):
        1. SELECT ... FOR UPDATE the product row (serialises concurrent sales
           of the same product; other products don't contend)
        2. Reject if stock < quantity
        3. Conditional decrement (WHERE stock_quantity >= quantity)
        4. Insert the sale using the price read in step 1
        5. Commit; any failure rolls everything back

        Returns: (sale, remaining_stock)
        """
        product_id = str(product_id).strip() if product_id is not None else ""
        if not product_id or quantity_sold is None or quantity_sold < 1:
            raise InvalidInputError("Invalid input: Product ID and quantity sold are required.")

        try:
            result = await session.execute(
                select(Product.id, Product.name, Product.stock_quantity, Product.price)
                .where(Product.id == product_id)
                .with_for_update()
            )
            product = result.one_or_none()
            if product is None:
                raise NotFoundError("Product not found")

            logger.info(
                f"🛒 Sale of {quantity_sold} x '{product.name}' ({product_id}), "
                f"stock {product.stock_quantity}"
            )
            if product.stock_quantity < quantity_sold:
                raise InsufficientStockError(product.stock_quantity, quantity_sold)

            decremented = await session.execute(
                update(Product)
                .where(Product.id == product_id, Product.stock_quantity >= quantity_sold)
                .values(
                    stock_quantity=Product.stock_quantity - quantity_sold,
                    updated_at=utcnow()
                )
                .returning(Product.stock_quantity)
                .execution_options(synchronize_session=False)
            )
            remaining = decremented.scalar_one_or_none()
            if remaining is None:
                # Only reachable where the engine ignores FOR UPDATE
                current = await session.scalar(
                    select(Product.stock_quantity).where(Product.id == product_id)
                )
                raise InsufficientStockError(current or 0, quantity_sold)

            price = Decimal(str(product.price))
            sale = Sale(
                product_id=product_id,
                quantity_sold=quantity_sold,
                sale_price_per_unit=price,
                total_amount=price * quantity_sold,
            )
            session.add(sale)
            await session.commit()
        except BeYouError as e:
            await session.rollback()
            logger.warning(f"⚠️ Sale rejected for {product_id}: {e.message}")
            raise
        except Exception as e:
            await session.rollback()
            logger.error(f"❌ Sale transaction for {product_id} rolled back: {e}")
            raise

        page_revalidator.mark_stale(*PRODUCT_PAGES)
        logger.info(f"✅ Sale {sale.id} committed: total {sale.total_amount}, {remaining} left")
        return sale, remaining

    @staticmethod
    async def list_sales_for_product(session: AsyncSession, product_id: str) -> list[Sale]:
        result = await session.execute(
            select(Sale).where(Sale.product_id == product_id).order_by(Sale.sale_date.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def recent_sales(session: AsyncSession, limit: int = 10) -> list[dict]:
        """Latest sales with product names"""
        result = await session.execute(
            select(
                Sale.id,
                Product.name.label("product_name"),
                Sale.quantity_sold,
                Sale.total_amount,
                Sale.sale_date,
            )
            .join(Product, Sale.product_id == Product.id)
            .order_by(Sale.sale_date.desc())
            .limit(limit)
        )
        return [
            {
                "id": row.id,
                "product_name": row.product_name,
                "quantity": row.quantity_sold,
                "amount": float(row.total_amount),
                "date": row.sale_date,
            }
            for row in result.all()
        ]

    @staticmethod
    async def sales_overview(session: AsyncSession, days: int = 30) -> list[dict]:
        """Daily sale totals for the trailing window"""
        since = utcnow() - timedelta(days=days)
        day = func.date(Sale.sale_date)
        result = await session.execute(
            select(day.label("day"), func.sum(Sale.total_amount).label("total"))
            .where(Sale.sale_date >= since)
            .group_by(day)
            .order_by(day)
        )
        return [{"date": row.day, "total": float(row.total or 0)} for row in result.all()]

    @staticmethod
    async def summary_since(session: AsyncSession, since: datetime) -> SalesSummary:
        result = await session.execute(
            select(
                func.count(Sale.id),
                func.coalesce(func.sum(Sale.total_amount), 0)
            ).where(Sale.sale_date >= since)
        )
        orders, amount = result.one()
        return SalesSummary(orders=orders, amount=Decimal(str(amount)))

    @staticmethod
    async def todays_summary(session: AsyncSession) -> SalesSummary:
        start_of_day = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        return await SalesService.summary_since(session, start_of_day)

    @staticmethod
    async def dashboard(session: AsyncSession) -> dict:
        """Admin landing page figures"""
        products = await ProductService.list_products(session)
        recent_product = await ProductService.get_most_recent(session)
        today = await SalesService.todays_summary(session)

        return {
            "total_products": len(products),
            "zero_quantity_products": [p for p in products if p.stock_quantity == 0],
            "recent_product": recent_product,
            "orders_today": today.orders,
            "sales_today_amount": float(today.amount),
        }
