"""
预订服务 - 本体操作层
组织 Reservation 聚合根的客人、附加项、餐饮计划与支付操作
费用计算全部委托给 Reservation 本身
"""
import logging
from typing import List, Optional, Iterable
from uuid import UUID
from sqlalchemy.orm import Session
from hotel_booking.domain.reservation import ReservationRepository
from hotel_booking.models.ontology import (
    Reservation, Room, Guest, Extra, MealPlan, Payment,
    ExtraCategory, PaymentStatus
)
from hotel_booking.models.schemas import (
    GuestCreate, ReservationDatesInput, PaymentCreate, CostBreakdown
)

logger = logging.getLogger(__name__)


class ReservationService:
    """预订服务"""

    def __init__(self, db: Session):
        self.db = db
        self.repository = ReservationRepository(db)

    def get_reservation(self, reservation_id: UUID) -> Optional[Reservation]:
        """按公开 UUID 获取预订"""
        return self.repository.get_by_reservation_id(reservation_id)

    def start_reservation(self, room_id: int, dates: ReservationDatesInput) -> Reservation:
        """
        为房间创建一个新的预订，支付成功前不入库

        Raises:
            ValueError: 房间不存在或已被已入库的预订占用
        """
        room = self.db.query(Room).filter(Room.id == room_id).first()
        if not room:
            raise ValueError(f"Room {room_id} does not exist")
        held = room.reservation
        if held is not None:
            if held.id is not None:
                raise ValueError(f"Room {room.room_number} is already reserved")
            # 未入库的预订不占用房间，由新预订接替
            held.room = None
            logger.info(f"Unpaid reservation {held.reservation_id} released room {room.room_number}")

        reservation = Reservation(room=room, dates=dates.to_dates())
        logger.info(
            f"Reservation {reservation.reservation_id} started for room {room.room_number}, "
            f"{reservation.dates.total_nights()} nights"
        )
        return reservation

    # ============== 客人 ==============

    def add_guest(self, reservation: Reservation, data: GuestCreate) -> Guest:
        """添加客人，房间已满时抛出 ValueError"""
        guest = Guest(**data.model_dump())
        try:
            reservation.add_guest(guest)
        except ValueError as e:
            logger.warning(f"Guest {guest.full_name} rejected for {reservation.reservation_id}: {e}")
            raise
        logger.info(f"Guest {guest.full_name} added to {reservation.reservation_id}")
        return guest

    def remove_guest(self, reservation: Reservation, temp_id: UUID) -> bool:
        """移除客人及其餐饮计划"""
        removed = reservation.remove_guest_by_id(temp_id)
        if removed:
            reservation.set_meal_plans(
                plan for plan in reservation.meal_plans if plan.guest.temp_id != temp_id
            )
            logger.info(f"Guest {temp_id} removed from {reservation.reservation_id}")
        return removed

    # ============== 附加项 ==============

    def _load_extras(self, extra_ids: Iterable[int]) -> List[Extra]:
        extra_ids = set(extra_ids)
        if not extra_ids:
            return []
        extras = self.db.query(Extra).filter(Extra.id.in_(extra_ids)).all()
        missing = extra_ids - {extra.id for extra in extras}
        if missing:
            raise ValueError(f"Extras not found: {sorted(missing)}")
        return extras

    def _check_pricing_type(self, reservation: Reservation, extras: Iterable[Extra]) -> None:
        pricing_type = reservation.extra_pricing_type()
        mismatched = [extra for extra in extras if extra.type != pricing_type]
        if mismatched:
            raise ValueError(
                f"Room requires {pricing_type.value} extras, got: "
                + ", ".join(sorted(extra.description for extra in mismatched))
            )

    def available_general_extras(self, reservation: Reservation) -> List[Extra]:
        """房型对应计价类型下可选的通用附加项"""
        return self.db.query(Extra).filter(
            Extra.category == ExtraCategory.GENERAL,
            Extra.type == reservation.extra_pricing_type()
        ).order_by(Extra.description).all()

    def set_general_extras(self, reservation: Reservation, extra_ids: Iterable[int]) -> List[Extra]:
        """
        替换预订的通用附加项

        Raises:
            ValueError: 附加项不存在、不是 General 类别或计价类型与房型不符
        """
        extras = self._load_extras(extra_ids)
        self._check_pricing_type(
            reservation, [extra for extra in extras if extra.category == ExtraCategory.GENERAL]
        )
        reservation.set_general_extras(extras)
        logger.info(f"Reservation {reservation.reservation_id} general extras set: {len(extras)}")
        return extras

    # ============== 餐饮计划 ==============

    def set_meal_plan(self, reservation: Reservation, guest_temp_id: UUID,
                      food_extra_ids: Iterable[int] = (),
                      diet_extra_ids: Iterable[int] = ()) -> MealPlan:
        """为客人设置餐饮计划，已有计划会被替换"""
        guest = next(
            (guest for guest in reservation.guests if guest.temp_id == guest_temp_id), None
        )
        if guest is None:
            raise ValueError(f"Guest {guest_temp_id} is not on this reservation")

        food_extras = self._load_extras(food_extra_ids)
        self._check_pricing_type(reservation, food_extras)
        diet_requirements = self._load_extras(diet_extra_ids)

        meal_plan = MealPlan(
            guest=guest,
            food_extras=set(food_extras),
            diet_requirements=set(diet_requirements),
        )
        others = [plan for plan in reservation.meal_plans if plan.guest is not guest]
        reservation.set_meal_plans(others + [meal_plan])
        logger.info(f"Meal plan set for {guest.full_name} on {reservation.reservation_id}")
        return meal_plan

    # ============== 费用与支付 ==============

    def get_cost_breakdown(self, reservation: Reservation) -> CostBreakdown:
        return CostBreakdown.from_reservation(reservation)

    def record_payment(self, reservation: Reservation, data: PaymentCreate) -> Payment:
        """
        记录一次支付尝试

        被拒绝的支付只保留在预订的支付历史中；支付成功时记录创建时间并入库

        Raises:
            ValueError: 成功支付时预订缺少房间、入住晚数或成人客人
        """
        if data.accepted:
            if reservation.room is None:
                raise ValueError("Reservation has no room assigned")
            if reservation.dates is None or reservation.dates.total_nights() == 0:
                raise ValueError("Reservation has no nights to charge")
            if not reservation.has_at_least_one_adult_guest():
                raise ValueError("Reservation requires at least one adult guest")

        payment = Payment(
            amount=data.amount,
            method=data.method,
            status=PaymentStatus.ACCEPTED if data.accepted else PaymentStatus.DECLINED,
            remark=data.remark,
        )
        reservation.add_attempted_payment(payment)

        if not data.accepted:
            logger.warning(
                f"Payment of {data.amount} declined for {reservation.reservation_id} "
                f"(attempt {len(reservation.attempted_payments)})"
            )
            return payment

        reservation.set_created_time_now()
        self.repository.save(reservation)
        logger.info(f"Payment of {data.amount} accepted for {reservation.reservation_id}")
        return payment
