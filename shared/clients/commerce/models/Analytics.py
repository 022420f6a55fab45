"""Store analytics snapshot, aggregated from recent orders."""

from datetime import datetime, timedelta, timezone

from pydantic import BaseModel

from shared.clients.commerce.models.Order import Order
from shared.clients.commerce.models.common import parse_timestamp, to_float

PAID_STATUSES = ("paid",)
PENDING_STATUSES = ("pending", "authorized")


class RevenueSummary(BaseModel):
    today: float = 0.0
    week: float = 0.0
    month: float = 0.0


class OrderCounts(BaseModel):
    today: int = 0
    week: int = 0
    month: int = 0
    pending: int = 0


class TopProduct(BaseModel):
    product_id: str | None = None
    name: str
    quantity: int
    revenue: float


class StoreAnalytics(BaseModel):
    period: str = "last_30_days"
    generated_at: str
    currency: str | None = None
    revenue: RevenueSummary = RevenueSummary()
    orders: OrderCounts = OrderCounts()
    top_products: list[TopProduct] = []
    average_order_value: float = 0.0

    @classmethod
    def from_orders(cls, orders: list[Order], now: datetime | None = None, top_n: int = 5) -> "StoreAnalytics":
        """Aggregate revenue, order counts and best sellers.

        Revenue and best sellers count paid orders only; the average order
        value is taken over the last 7 days like the weekly revenue.

        Args:
            orders (list[Order]): Orders of the last 30 days.
            now (datetime | None): Reference time, defaults to the current UTC time.
            top_n (int): Number of best sellers to keep.
        """
        now = now or datetime.now(timezone.utc)
        windows = {
            "today": now - timedelta(days=1),
            "week": now - timedelta(days=7),
            "month": now - timedelta(days=30),
        }
        revenue = RevenueSummary()
        counts = OrderCounts()
        product_stats: dict[str, TopProduct] = {}
        currency = None

        for order in orders:
            currency = currency or order.currency
            if (order.payment_status or "").lower() in PENDING_STATUSES:
                counts.pending += 1
            if (order.payment_status or "").lower() not in PAID_STATUSES:
                continue
            created = parse_timestamp(order.created_at)
            if created is None:
                continue
            total = to_float(order.total)
            for window, start in windows.items():
                if created >= start:
                    setattr(revenue, window, getattr(revenue, window) + total)
                    setattr(counts, window, getattr(counts, window) + 1)
            if created < windows["month"]:
                continue
            for item in order.products:
                key = item.product_id or item.name or "unknown"
                stats = product_stats.get(key)
                if stats is None:
                    stats = TopProduct(product_id=item.product_id, name=item.name or "Unnamed product", quantity=0, revenue=0.0)
                    product_stats[key] = stats
                stats.quantity += item.quantity
                stats.revenue += to_float(item.price) * item.quantity

        top_products = sorted(product_stats.values(), key=lambda p: p.revenue, reverse=True)[:top_n]
        average = revenue.week / counts.week if counts.week else 0.0
        return cls(
            generated_at=now.isoformat(),
            currency=currency,
            revenue=revenue,
            orders=counts,
            top_products=top_products,
            average_order_value=round(average, 2),
        )
