"""
Pydantic schemas for period analytics.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field


class DailyAnalytics(BaseModel):
    """Totals for a single day of the period (zero when nothing was reported)."""

    date: date
    gross_sales: Decimal = Decimal("0.00")
    withdrawals: Decimal = Decimal("0.00")
    tips: Decimal = Decimal("0.00")
    voids: Decimal = Decimal("0.00")
    loss: Decimal = Decimal("0.00")
    gross_revenue: Decimal = Decimal("0.00")
    net_revenue: Decimal = Decimal("0.00")
    reports: int = 0


class AnalyticsResponse(BaseModel):
    """Aggregates over a date range, optionally for a single venue."""

    start_date: date
    end_date: date
    venue_id: Optional[UUID] = None

    total_gross_sales: Decimal = Field(..., description="Sum of declared gross sales")
    total_withdrawals: Decimal = Field(..., description="Sum of withdrawals")
    total_tips: Decimal = Field(..., description="Cash plus card tips")
    total_voids: Decimal = Field(..., description="Sum of voided sales")
    total_loss: Decimal = Field(..., description="Sum of Strata losses")
    total_gross_revenue: Decimal
    total_net_revenue: Decimal

    total_reports: int
    approved_reports: int = Field(..., description="Approved and locked reports")
    pending_reports: int = Field(..., description="Draft and submitted reports")

    days_with_data: int = Field(..., description="Days with gross sales above zero")
    average_daily_sales: Decimal
    average_daily_withdrawals: Decimal
    average_daily_gross_revenue: Decimal
    average_daily_net_revenue: Decimal

    daily_data: List[DailyAnalytics]
    cached: bool = Field(default=False, description="Whether the result came from the cache")
