"""
Pydantic 模式定义
用于服务层输入校验与费用明细输出
"""
from datetime import date, time
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from pydantic import BaseModel, Field, model_validator
from hotel_booking.models.ontology import (
    ExtraType, PaymentMethod, Reservation, ReservationDates
)

CENT = Decimal("0.01")


def _to_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


# ============== 客人 Schemas ==============

class GuestCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    is_child: bool = False
    is_primary_contact: bool = False


# ============== 日期 Schemas ==============

class ReservationDatesInput(BaseModel):
    check_in: date
    check_out: date
    late_checkout: bool = False
    estimated_check_in_time: Optional[time] = None

    @model_validator(mode="after")
    def check_out_not_before_check_in(self):
        if self.check_out < self.check_in:
            raise ValueError("check_out must not be before check_in")
        return self

    def to_dates(self) -> ReservationDates:
        return ReservationDates(
            check_in=self.check_in,
            check_out=self.check_out,
            late_checkout=self.late_checkout,
            estimated_check_in_time=self.estimated_check_in_time,
        )


# ============== 支付 Schemas ==============

class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    method: PaymentMethod
    accepted: bool
    remark: Optional[str] = None


# ============== 费用明细 Schemas ==============

class CostBreakdown(BaseModel):
    """发票用的分项小计，金额按分四舍五入，仅用于展示"""
    nights: int
    pricing_type: ExtraType
    room_cost: Decimal
    late_checkout_fee: Decimal
    room_cost_with_late_checkout_fee: Decimal
    general_extras_cost: Decimal
    meal_plans_cost: Decimal
    total_excluding_tax: Decimal
    tax: Decimal
    total_including_tax: Decimal

    @classmethod
    def from_reservation(cls, reservation: Reservation) -> "CostBreakdown":
        return cls(
            nights=reservation.dates.total_nights() if reservation.dates is not None else 0,
            pricing_type=reservation.extra_pricing_type(),
            room_cost=_to_cents(reservation.total_room_cost()),
            late_checkout_fee=_to_cents(reservation.chargeable_late_checkout_fee()),
            room_cost_with_late_checkout_fee=_to_cents(
                reservation.total_room_cost_with_late_checkout_fee()
            ),
            general_extras_cost=_to_cents(reservation.total_general_extras_cost()),
            meal_plans_cost=_to_cents(reservation.total_meal_plans_cost()),
            total_excluding_tax=_to_cents(reservation.total_cost_excluding_tax()),
            tax=_to_cents(reservation.taxable_amount()),
            total_including_tax=_to_cents(reservation.total_cost_including_tax()),
        )
