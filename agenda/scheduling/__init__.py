"""
Availability & conflict engine.

- Slot generation per staff member (availability.py)
- Combined availability across qualified staff (availability.py)
- Conflict validation for proposed bookings (conflicts.py)
- Recurrence expansion (recurrence.py)
- Booking status transitions (lifecycle.py)

Everything here is pure: data comes in through the repositories
(repositories.py) or as plain lists, nothing is written back.
"""
