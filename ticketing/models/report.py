# ticketing/models/report.py
from datetime import datetime
from typing import List

from ticketing.models.base import CamelModel


class SellerStats(CamelModel):
    revenue_minor: int
    tickets_sold: int
    active_events: int
    daily_revenue: List[int]
    daily_orders: List[int]
    start_date: datetime


class Customer(CamelModel):
    email: str
    orders: int = 0
    tickets: int = 0
    last_order_at: datetime
