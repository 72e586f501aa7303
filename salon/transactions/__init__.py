"""
Atomic transaction handlers.

Transaction handlers encapsulate multi-step operations that must execute
atomically. The capacity check and the insert of a booking happen inside one
database transaction that holds a row lock on the system configuration.

Transaction handlers:
- BookingTransaction: Create and reschedule appointments
"""

from salon.transactions.booking_transaction import BookingTransaction

__all__ = ["BookingTransaction"]
