class InvalidTimeFormat(ValueError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid time '{value}', expected HH:MM")


class DoubleBookingConflict(Exception):
    """Raised when a booking write would overlap existing bookings.

    ``conflicts`` holds the clashing bookings so the caller can tell the
    user which slots are taken.
    """

    def __init__(self, conflicts):
        self.conflicts = list(conflicts)
        super().__init__(f"Time slot overlaps {len(self.conflicts)} existing booking(s)")

    def as_dict(self):
        return [conflict.as_dict() for conflict in self.conflicts]


class NotFound(Exception):
    entity = 'Object'

    def __init__(self, object_id):
        self.object_id = object_id
        super().__init__(f"{self.entity} {object_id} not found")


class BookingNotFound(NotFound):
    entity = 'Booking'


class PaymentNotFound(NotFound):
    entity = 'Payment'


class ClientNotFound(NotFound):
    entity = 'Client'


class ServiceNotFound(NotFound):
    entity = 'Add-on service'


class LeadNotFound(NotFound):
    entity = 'Lead'
