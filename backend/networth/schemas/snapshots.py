"""Pydantic schemas for snapshot and cash-flow payloads."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field


class MonthlySnapshotSchema(BaseModel):
    year: int = Field(..., ge=1900, le=9999)
    month: int = Field(..., ge=1, le=12)
    total_net_worth: float
    by_asset_class: dict[str, float] = Field(default_factory=dict)
    is_dummy: bool = False
    liquid_net_worth: float | None = None
    illiquid_net_worth: float | None = None
    note: str | None = Field(default=None, max_length=512)

    class Config:
        json_schema_extra = {
            "example": {
                "year": 2025,
                "month": 3,
                "total_net_worth": 125000,
                "by_asset_class": {"equity": 90000, "bonds": 35000},
                "is_dummy": False,
            }
        }


class CashFlowSchema(BaseModel):
    date: date
    income: float = 0.0
    expenses: float = 0.0
    dividend_income: float = 0.0
    net_cash_flow: float | None = Field(
        default=None,
        description="Net contribution for the month; derived as income - expenses when omitted",
    )


__all__ = ["CashFlowSchema", "MonthlySnapshotSchema"]
