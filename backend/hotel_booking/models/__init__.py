# Ontology Models
from hotel_booking.models.ontology import (
    Hotel, Room, Guest, Extra, MealPlan, Payment, Reservation, ReservationDates
)

__all__ = [
    'Hotel', 'Room', 'Guest', 'Extra', 'MealPlan', 'Payment', 'Reservation', 'ReservationDates'
]
