from hotel_booking.domain.reservation import ReservationRepository

__all__ = ["ReservationRepository"]
