"""Domain enumerations and state-transition rules."""

import enum


class UserRole(str, enum.Enum):
    OWNER = "owner"
    DRIVER = "driver"
    CUSTOMER = "customer"
    ADMIN = "admin"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine: maps current status -> set of valid next statuses.
# The forward path may skip steps; cancellation is open to every
# non-terminal status.
BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {
        BookingStatus.ACCEPTED,
        BookingStatus.ONGOING,
        BookingStatus.COMPLETED,
        BookingStatus.CANCELLED,
    },
    BookingStatus.ACCEPTED: {
        BookingStatus.ONGOING,
        BookingStatus.COMPLETED,
        BookingStatus.CANCELLED,
    },
    BookingStatus.ONGOING: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

# Statuses a client may request; ``pending`` is only ever the initial state.
REQUESTABLE_STATUSES = frozenset(
    {
        BookingStatus.ACCEPTED,
        BookingStatus.ONGOING,
        BookingStatus.COMPLETED,
        BookingStatus.CANCELLED,
    }
)


def source_statuses(target: BookingStatus) -> set[BookingStatus]:
    """Statuses from which *target* is a legal (non-redundant) transition."""
    return {
        current
        for current, allowed in BOOKING_TRANSITIONS.items()
        if target in allowed
    }


class NotificationKind(str, enum.Enum):
    CONFIRMATION = "confirmation"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
