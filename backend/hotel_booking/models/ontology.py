"""
本体对象定义 (Ontology Objects)
预订阶段的定价与入住规则：房间分配、按床位限制的客人名单、
餐饮计划、通用附加项以及分层的费用计算
"""
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, date, time
from decimal import Decimal
from enum import Enum
from typing import Optional, List, Iterable
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, Time, Table, Uuid,
    ForeignKey, Text, Enum as SQLEnum, Boolean, Numeric
)
from sqlalchemy.orm import relationship, composite, validates
from hotel_booking.config import settings
from hotel_booking.database import Base

ZERO = Decimal("0")

# 儿童餐饮计划的减免比例
CHILD_DISCOUNT_PERCENT = Decimal("0.60")


# ============== 枚举定义 ==============

class RoomType(str, Enum):
    """房型"""
    SINGLE = "single"
    DOUBLE = "double"
    TWIN = "twin"
    FAMILY = "family"
    BUSINESS = "business"
    LUXURY = "luxury"


PREMIUM_ROOM_TYPES = frozenset({RoomType.LUXURY, RoomType.BUSINESS})


class ExtraCategory(str, Enum):
    """附加项类别"""
    GENERAL = "general"    # 通用（任何房型可选）
    FOOD = "food"          # 餐饮
    DIET = "diet"          # 饮食要求（免费）


class ExtraType(str, Enum):
    """附加项计价类型"""
    BASIC = "basic"
    PREMIUM = "premium"


class PaymentStatus(str, Enum):
    """支付状态"""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class PaymentMethod(str, Enum):
    """支付方式"""
    CASH = "cash"
    CARD = "card"


# ============== 关联表 ==============

reservation_guests = Table(
    "reservation_guests",
    Base.metadata,
    Column("reservation_id", Integer, ForeignKey("reservations.id"), primary_key=True),
    Column("guest_id", Integer, ForeignKey("guests.id"), primary_key=True),
)

reservation_general_extras = Table(
    "reservation_general_extras",
    Base.metadata,
    Column("reservation_id", Integer, ForeignKey("reservations.id"), primary_key=True),
    Column("general_extra_id", Integer, ForeignKey("extras.id"), primary_key=True),
)

meal_plan_food_extras = Table(
    "meal_plan_food_extras",
    Base.metadata,
    Column("meal_plan_id", Integer, ForeignKey("meal_plans.id"), primary_key=True),
    Column("extra_id", Integer, ForeignKey("extras.id"), primary_key=True),
)

meal_plan_diet_requirements = Table(
    "meal_plan_diet_requirements",
    Base.metadata,
    Column("meal_plan_id", Integer, ForeignKey("meal_plans.id"), primary_key=True),
    Column("extra_id", Integer, ForeignKey("extras.id"), primary_key=True),
)


# ============== 金额转换 ==============

def _to_decimal(value):
    """金额统一转为 Decimal，float 经 str 转换以避免二进制误差"""
    if value is None or isinstance(value, Decimal):
        return value
    return Decimal(str(value))


# ============== 值对象 ==============

@dataclass(frozen=True)
class ReservationDates:
    """
    入住日期区间 - 嵌入 Reservation 的值对象
    不可变：修改时通过 with_late_checkout / dataclasses.replace 生成新实例
    """
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    late_checkout: Optional[bool] = False
    estimated_check_in_time: Optional[time] = None

    def total_nights(self) -> int:
        """入住晚数，日期不完整或退房不晚于入住时为 0"""
        if self.check_in is None or self.check_out is None:
            return 0
        return max((self.check_out - self.check_in).days, 0)

    def is_late_checkout(self) -> bool:
        return bool(self.late_checkout)

    def with_late_checkout(self, late_checkout: bool) -> "ReservationDates":
        return replace(self, late_checkout=late_checkout)


# ============== 本体对象定义 ==============

class Hotel(Base):
    """酒店对象 - 持有延迟退房费配置"""
    __tablename__ = "hotels"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    late_checkout_fee = Column(Numeric(10, 2))             # 延迟退房费

    rooms = relationship("Room", back_populates="hotel")

    @validates("late_checkout_fee")
    def _validate_late_checkout_fee(self, key, value):
        return _to_decimal(value)


class Room(Base):
    """
    房间对象
    reservation_id 为一对一关联的持有方
    """
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    room_number = Column(String(10), unique=True, nullable=False)  # 房间号
    room_type = Column(SQLEnum(RoomType), nullable=False, default=RoomType.DOUBLE)
    beds = Column(Integer, nullable=False, default=1)              # 床位数
    cost_per_night = Column(Numeric(10, 2), nullable=False)        # 每晚房价
    hotel_id = Column(Integer, ForeignKey("hotels.id"))
    reservation_id = Column(Integer, ForeignKey("reservations.id"), unique=True)

    # 链接
    hotel = relationship("Hotel", back_populates="rooms")
    reservation = relationship("Reservation", back_populates="room")

    @validates("cost_per_night")
    def _validate_cost_per_night(self, key, value):
        return _to_decimal(value)

    def __repr__(self):
        return f"<Room {self.room_number} {self.room_type} beds={self.beds}>"


class Guest(Base):
    """
    客人对象
    temp_id 在构造时生成，入库前即可用于识别客人
    """
    __tablename__ = "guests"

    id = Column(Integer, primary_key=True, index=True)
    temp_id = Column(Uuid, nullable=False, default=uuid.uuid4)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    is_child = Column(Boolean, default=False)
    is_primary_contact = Column(Boolean, default=False)

    # 只读链接：客人名单只能通过 Reservation 修改
    reservations = relationship("Reservation", secondary=reservation_guests, viewonly=True)

    def __init__(self, **kwargs):
        kwargs.setdefault("temp_id", uuid.uuid4())
        kwargs.setdefault("is_child", False)
        kwargs.setdefault("is_primary_contact", False)
        super().__init__(**kwargs)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def sort_key(self):
        """主联系人优先，其次按姓、名排序"""
        return (
            not self.is_primary_contact,
            (self.last_name or "").lower(),
            (self.first_name or "").lower(),
        )

    def __repr__(self):
        return f"<Guest {self.full_name} child={self.is_child}>"


class Extra(Base):
    """
    附加项对象
    price 为每晚单价，同一项目的 Basic/Premium 价格各为一条记录
    """
    __tablename__ = "extras"

    id = Column(Integer, primary_key=True, index=True)
    description = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(SQLEnum(ExtraCategory), nullable=False)
    type = Column(SQLEnum(ExtraType), nullable=False, default=ExtraType.BASIC)

    @validates("price")
    def _validate_price(self, key, value):
        return _to_decimal(value)

    def total_price(self, nights: int) -> Decimal:
        """每晚单价 × 晚数"""
        if nights <= 0:
            return ZERO
        return (self.price or ZERO) * nights

    def __repr__(self):
        return f"<Extra {self.description} {self.category.value}/{self.type.value}>"


class MealPlan(Base):
    """
    餐饮计划对象
    属于 Reservation 聚合根，每位客人一份
    """
    __tablename__ = "meal_plans"

    id = Column(Integer, primary_key=True, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"))
    guest_id = Column(Integer, ForeignKey("guests.id"), nullable=False)

    # 链接
    reservation = relationship("Reservation", back_populates="meal_plans")
    guest = relationship("Guest")
    food_extras = relationship("Extra", secondary=meal_plan_food_extras, collection_class=set)
    diet_requirements = relationship("Extra", secondary=meal_plan_diet_requirements, collection_class=set)

    @validates("food_extras")
    def _validate_food_extra(self, key, extra):
        if extra.category != ExtraCategory.FOOD:
            raise ValueError(f"{extra.description} is not a food extra")
        return extra

    @validates("diet_requirements")
    def _validate_diet_requirement(self, key, extra):
        if extra.category != ExtraCategory.DIET:
            raise ValueError(f"{extra.description} is not a diet requirement")
        return extra

    def has_food_extras(self) -> bool:
        return bool(self.food_extras)

    def has_diet_requirements(self) -> bool:
        return bool(self.diet_requirements)

    def total_meal_plan_cost(self) -> Decimal:
        """
        食品附加项按所属预订的晚数计价，儿童享受折扣，饮食要求不收费

        Returns:
            未挂到预订上的计划返回 0
        """
        if self.reservation is None or self.reservation.dates is None:
            return ZERO
        nights = self.reservation.dates.total_nights()
        cost = sum((extra.total_price(nights) for extra in self.food_extras), ZERO)
        if self.guest is not None and self.guest.is_child:
            cost = cost * (1 - CHILD_DISCOUNT_PERCENT)
        return cost


class Payment(Base):
    """
    支付尝试记录
    被拒绝的支付同样保留，便于后续排查
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"))
    amount = Column(Numeric(10, 2), nullable=False)          # 支付金额
    method = Column(SQLEnum(PaymentMethod), nullable=False)  # 支付方式
    status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING)
    attempted_at = Column(DateTime, default=datetime.now)
    remark = Column(Text)

    reservation = relationship("Reservation", back_populates="attempted_payments")

    def __init__(self, **kwargs):
        kwargs.setdefault("status", PaymentStatus.PENDING)
        kwargs.setdefault("attempted_at", datetime.now())
        super().__init__(**kwargs)

    @property
    def is_accepted(self) -> bool:
        return self.status == PaymentStatus.ACCEPTED


class Reservation(Base):
    """
    预订对象 - 聚合根
    客人名单受房间床位数限制，通用附加项只能是 General 类别，
    所有金额均为 Decimal，不做舍入
    """
    __tablename__ = "reservations"

    TAX_RATE = Decimal("0.10")
    CHILD_DISCOUNT_PERCENT = CHILD_DISCOUNT_PERCENT

    id = Column(Integer, primary_key=True, index=True)
    reservation_id = Column(Uuid, unique=True, nullable=False, default=uuid.uuid4)

    # 嵌入的日期区间
    check_in_date = Column(Date)
    check_out_date = Column(Date)
    late_checkout = Column(Boolean, default=False)
    estimated_check_in_time = Column(Time)
    dates = composite(
        ReservationDates, check_in_date, check_out_date, late_checkout, estimated_check_in_time
    )

    # 支付成功并入库的时间
    created_time = Column(DateTime)

    # 链接
    room = relationship("Room", back_populates="reservation", uselist=False)
    _guests = relationship("Guest", secondary=reservation_guests, collection_class=set)
    general_extras = relationship("Extra", secondary=reservation_general_extras, collection_class=set)
    meal_plans = relationship(
        "MealPlan", back_populates="reservation", collection_class=set,
        cascade="all, delete-orphan"
    )
    attempted_payments = relationship(
        "Payment", back_populates="reservation", order_by="Payment.attempted_at",
        cascade="all, delete-orphan"
    )

    def __init__(self, room: Optional[Room] = None, guests: Iterable[Guest] = (),
                 dates: Optional[ReservationDates] = None, **kwargs):
        kwargs.setdefault("reservation_id", uuid.uuid4())
        super().__init__(**kwargs)
        self.dates = dates if dates is not None else ReservationDates()
        if room is not None:
            self.room = room
        guests = set(guests)
        if guests:
            self.set_guests(guests)

    # ============== 房间与客人 ==============

    @validates("room")
    def _validate_room(self, key, room):
        if room is not None and len(self._guests) > (room.beds or 0):
            raise ValueError(
                f"Room {room.room_number} has {room.beds} beds but the reservation has "
                f"{len(self._guests)} guests"
            )
        return room

    @property
    def guests(self) -> frozenset:
        """只读视图，修改请使用 add_guest / remove_guest_by_id / set_guests"""
        return frozenset(self._guests)

    def _check_capacity(self, guest_count: int) -> None:
        if guest_count == 0:
            return
        if self.room is None:
            raise ValueError("Reservation has no room assigned")
        if guest_count > (self.room.beds or 0):
            raise ValueError(
                f"Room {self.room.room_number} only has {self.room.beds} beds"
            )

    def add_guest(self, guest: Guest) -> None:
        """
        添加客人

        Raises:
            ValueError: 未分配房间或房间已满
        """
        if guest in self._guests:
            return
        self._check_capacity(len(self._guests) + 1)
        self._guests.add(guest)

    def set_guests(self, guests: Iterable[Guest]) -> None:
        """整体替换客人名单，超出床位时不做任何修改"""
        new_guests = set(guests)
        self._check_capacity(len(new_guests))
        self._guests = new_guests

    def clear_guests(self) -> None:
        self._guests.clear()

    def remove_guest_by_id(self, temp_id: uuid.UUID) -> bool:
        """按 temp_id 移除客人，返回是否有客人被移除"""
        matches = [guest for guest in self._guests if guest.temp_id == temp_id]
        for guest in matches:
            self._guests.discard(guest)
        return bool(matches)

    def is_room_full(self) -> bool:
        """未分配房间视为已满"""
        if self.room is None:
            return True
        return len(self._guests) >= (self.room.beds or 0)

    def has_guests(self) -> bool:
        return bool(self._guests)

    def has_at_least_one_adult_guest(self) -> bool:
        return any(not guest.is_child for guest in self._guests)

    def primary_contacts(self) -> List[Guest]:
        return [guest for guest in self._guests if guest.is_primary_contact]

    def sorted_guests(self) -> List[Guest]:
        return sorted(self._guests, key=Guest.sort_key)

    # ============== 附加项与餐饮计划 ==============

    @validates("general_extras")
    def _validate_general_extra(self, key, extra):
        if extra.category != ExtraCategory.GENERAL:
            raise ValueError(f"{extra.description} is not a general extra")
        return extra

    def set_general_extras(self, extras: Iterable[Extra]) -> None:
        """
        替换通用附加项

        Raises:
            ValueError: 包含非 General 类别的附加项，此时原集合保持不变
        """
        extras = set(extras)
        invalid = [extra for extra in extras if extra.category != ExtraCategory.GENERAL]
        if invalid:
            raise ValueError(
                "Contains extras that are not general: "
                + ", ".join(sorted(extra.description for extra in invalid))
            )
        self.general_extras = extras

    def reset_extras(self) -> None:
        self.general_extras = set()

    def set_meal_plans(self, meal_plans: Iterable[MealPlan]) -> None:
        self.meal_plans = set(meal_plans)

    def reset_meal_plans(self) -> None:
        self.meal_plans = set()

    def sorted_meal_plans_by_guest(self) -> List[MealPlan]:
        return sorted(self.meal_plans, key=lambda plan: plan.guest.sort_key())

    def has_meal_plans_with_food_extras(self) -> bool:
        return any(plan.has_food_extras() for plan in self.meal_plans)

    def has_meal_plans(self) -> bool:
        return any(
            plan.has_food_extras() or plan.has_diet_requirements()
            for plan in self.meal_plans
        )

    # ============== 支付 ==============

    def add_attempted_payment(self, payment: Payment) -> None:
        """保留每一次支付尝试，包括被拒绝的"""
        self.attempted_payments.append(payment)

    def set_created_time_now(self) -> None:
        self.created_time = datetime.now()

    # ============== 费用计算 ==============

    def _nights(self) -> int:
        return self.dates.total_nights() if self.dates is not None else 0

    def _is_premium_room(self) -> bool:
        return self.room is not None and self.room.room_type in PREMIUM_ROOM_TYPES

    def extra_pricing_type(self) -> ExtraType:
        """Luxury/Business 房型按 Premium 计价，其余按 Basic"""
        return ExtraType.PREMIUM if self._is_premium_room() else ExtraType.BASIC

    def late_checkout_fee(self) -> Decimal:
        """
        房型对应的延迟退房费，不考虑是否选择了延迟退房
        实际应收费用见 chargeable_late_checkout_fee
        """
        if self._is_premium_room():
            return ZERO
        hotel = self.room.hotel if self.room is not None else None
        if hotel is None or hotel.late_checkout_fee is None:
            return settings.DEFAULT_LATE_CHECKOUT_FEE
        return hotel.late_checkout_fee

    def chargeable_late_checkout_fee(self) -> Decimal:
        """仅在选择延迟退房且至少入住一晚时收取"""
        if self._nights() == 0:
            return ZERO
        if self.dates is not None and self.dates.is_late_checkout():
            return self.late_checkout_fee()
        return ZERO

    def total_room_cost(self) -> Decimal:
        """晚数 × 每晚房价，不含延迟退房费"""
        nights = self._nights()
        if nights == 0 or self.room is None:
            return ZERO
        return (self.room.cost_per_night or ZERO) * nights

    def total_room_cost_with_late_checkout_fee(self) -> Decimal:
        return self.total_room_cost() + self.chargeable_late_checkout_fee()

    def total_general_extras_cost(self) -> Decimal:
        nights = self._nights()
        return sum((extra.total_price(nights) for extra in self.general_extras), ZERO)

    def total_meal_plans_cost(self) -> Decimal:
        return sum((plan.total_meal_plan_cost() for plan in self.meal_plans), ZERO)

    def total_cost_excluding_tax(self) -> Decimal:
        """房费 + 延迟退房费 + 通用附加项 + 餐饮计划；0 晚时各项均为 0"""
        return (
            self.total_room_cost_with_late_checkout_fee()
            + self.total_general_extras_cost()
            + self.total_meal_plans_cost()
        )

    def taxable_amount(self) -> Decimal:
        """税额，例如 100 的 10% 为 10"""
        return self.total_cost_excluding_tax() * self.TAX_RATE

    def total_cost_including_tax(self) -> Decimal:
        return self.total_cost_excluding_tax() + self.taxable_amount()

    def __repr__(self):
        room_number = self.room.room_number if self.room is not None else None
        return f"<Reservation {self.reservation_id} room={room_number}>"
