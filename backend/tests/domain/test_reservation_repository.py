"""测试 ReservationRepository 及预订的持久化映射"""
import pytest
from datetime import date, time
from decimal import Decimal

from hotel_booking.domain.reservation import ReservationRepository
from hotel_booking.models.ontology import (
    Guest, MealPlan, Payment, PaymentMethod, PaymentStatus, Reservation, ReservationDates,
)


@pytest.fixture
def sample_reservation(db_session, double_room, extras):
    adult = Guest(first_name="Ann", last_name="Lee", is_primary_contact=True)
    child = Guest(first_name="Tim", last_name="Lee", is_child=True)
    reservation = Reservation(
        room=double_room,
        guests=[adult, child],
        dates=ReservationDates(
            check_in=date(2025, 2, 1),
            check_out=date(2025, 2, 3),
            late_checkout=True,
            estimated_check_in_time=time(14, 0),
        ),
    )
    reservation.set_general_extras({extras["wifi"]})
    reservation.set_meal_plans([MealPlan(guest=child, food_extras={extras["breakfast"]})])
    reservation.add_attempted_payment(
        Payment(amount=Decimal("10.00"), method=PaymentMethod.CARD, status=PaymentStatus.DECLINED)
    )
    reservation.set_created_time_now()
    ReservationRepository(db_session).save(reservation)
    return reservation


class TestReservationRepository:

    def test_get_by_reservation_id(self, db_session, sample_reservation):
        repo = ReservationRepository(db_session)
        found = repo.get_by_reservation_id(sample_reservation.reservation_id)
        assert found is not None
        assert found.id == sample_reservation.id

    def test_get_by_id(self, db_session, sample_reservation):
        repo = ReservationRepository(db_session)
        assert repo.get_by_id(sample_reservation.id).reservation_id == sample_reservation.reservation_id
        assert repo.get_by_id(9999) is None

    def test_find_by_room(self, db_session, sample_reservation, double_room, luxury_room):
        repo = ReservationRepository(db_session)
        assert repo.find_by_room(double_room.id).id == sample_reservation.id
        assert repo.find_by_room(luxury_room.id) is None

    def test_find_paid_excludes_unpaid(self, db_session, sample_reservation, luxury_room):
        repo = ReservationRepository(db_session)
        repo.save(Reservation(room=luxury_room))
        paid = repo.find_paid()
        assert [r.id for r in paid] == [sample_reservation.id]
        assert len(repo.list_all()) == 2


class TestPersistedReservation:

    def test_round_trip(self, db_session, sample_reservation):
        reservation_id = sample_reservation.reservation_id
        db_session.expire_all()

        loaded = ReservationRepository(db_session).get_by_reservation_id(reservation_id)
        assert loaded.room.room_number == "101"
        assert {g.first_name for g in loaded.guests} == {"Ann", "Tim"}
        assert loaded.dates == ReservationDates(
            check_in=date(2025, 2, 1),
            check_out=date(2025, 2, 3),
            late_checkout=True,
            estimated_check_in_time=time(14, 0),
        )
        assert {e.description for e in loaded.general_extras} == {"WiFi"}
        assert len(loaded.meal_plans) == 1
        assert [p.status for p in loaded.attempted_payments] == [PaymentStatus.DECLINED]
        assert loaded.created_time is not None

    def test_costs_after_reload(self, db_session, sample_reservation):
        reservation_id = sample_reservation.reservation_id
        db_session.expire_all()

        loaded = ReservationRepository(db_session).get_by_reservation_id(reservation_id)
        # room 120 x 2 + late fee 30 + wifi 5 x 2 + child breakfast 15 x 2 x 0.4
        assert loaded.total_cost_excluding_tax() == Decimal("292.00")
        assert loaded.total_cost_including_tax() == Decimal("321.20")

    def test_deleting_reservation_removes_owned_rows(self, db_session, sample_reservation):
        db_session.delete(sample_reservation)
        db_session.commit()
        assert db_session.query(MealPlan).count() == 0
        assert db_session.query(Payment).count() == 0
        assert db_session.query(Guest).count() == 2
