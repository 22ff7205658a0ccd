"""
domain/reservation.py

Reservation 仓储 - 按业务标识查询与保存预订
"""
from typing import Optional, List
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from hotel_booking.models.ontology import Reservation, Room

logger = logging.getLogger(__name__)


class ReservationRepository:
    def __init__(self, db_session: Session):
        self._db = db_session

    def get_by_id(self, reservation_pk: int) -> Optional[Reservation]:
        return self._db.query(Reservation).filter(Reservation.id == reservation_pk).first()

    def get_by_reservation_id(self, reservation_id: UUID) -> Optional[Reservation]:
        return self._db.query(Reservation).filter(
            Reservation.reservation_id == reservation_id
        ).first()

    def find_by_room(self, room_id: int) -> Optional[Reservation]:
        return self._db.query(Reservation).join(Reservation.room).filter(Room.id == room_id).first()

    def find_paid(self) -> List[Reservation]:
        """已支付成功（created_time 已记录）的预订"""
        return self._db.query(Reservation).filter(
            Reservation.created_time.isnot(None)
        ).order_by(Reservation.created_time.desc()).all()

    def save(self, reservation: Reservation) -> None:
        self._db.add(reservation)
        self._db.commit()
        logger.info(f"Reservation {reservation.reservation_id} saved")

    def list_all(self) -> List[Reservation]:
        return self._db.query(Reservation).order_by(Reservation.id).all()
