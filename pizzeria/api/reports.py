"""
Report routes. The dashboard is open to every signed-in account; the
detailed reports need ``view_reports``.
"""

from datetime import date
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pizzeria.api.deps import get_current_account, require
from pizzeria.core import permissions
from pizzeria.database import get_db
from pizzeria.models import Account
from pizzeria.schemas import (
    ChannelReport,
    DashboardReport,
    DataEnvelope,
    ProductSales,
    SalesReport,
    TimesReport,
)
from pizzeria.services import reports

router = APIRouter(prefix="/reports", tags=["Reports"])

can_view = require(permissions.VIEW_REPORTS)


@router.get("/dashboard", response_model=DataEnvelope[DashboardReport], summary="Dashboard")
async def dashboard(
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(get_current_account),
) -> DataEnvelope[DashboardReport]:
    return DataEnvelope[DashboardReport](data=await reports.dashboard(db))


@router.get("/sales", response_model=DataEnvelope[SalesReport], summary="Sales Report")
async def sales(
    grouping: Literal["hour", "day", "month"] = Query("day"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(can_view),
) -> DataEnvelope[SalesReport]:
    report = await reports.sales_report(db, grouping=grouping, date_from=date_from, date_to=date_to)
    return DataEnvelope[SalesReport](data=report)


@router.get("/products", response_model=DataEnvelope[List[ProductSales]], summary="Top Products")
async def products(
    limit: int = Query(10, ge=1, le=100),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(can_view),
) -> DataEnvelope[List[ProductSales]]:
    found = await reports.top_products(db, limit=limit, date_from=date_from, date_to=date_to)
    return DataEnvelope[List[ProductSales]](data=found)


@router.get("/times", response_model=DataEnvelope[TimesReport], summary="Preparation and Delivery Times")
async def times(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(can_view),
) -> DataEnvelope[TimesReport]:
    report = await reports.times_report(db, date_from=date_from, date_to=date_to)
    return DataEnvelope[TimesReport](data=report)


@router.get("/channels", response_model=DataEnvelope[ChannelReport], summary="Sales by Channel")
async def channels(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(can_view),
) -> DataEnvelope[ChannelReport]:
    report = await reports.channels_report(db, date_from=date_from, date_to=date_to)
    return DataEnvelope[ChannelReport](data=report)
