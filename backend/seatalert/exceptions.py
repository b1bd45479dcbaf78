"""Exceptions raised by the reconciliation engine and its adapters."""


class SeatAlertError(Exception):
    """Base class for all seat alert errors."""


class AvailabilityQueryError(SeatAlertError):
    """The upstream availability source failed or returned no usable data.

    Treated as transient: affected alerts stay PENDING and are retried on the
    next pass.
    """


class GroupProcessingError(SeatAlertError):
    """An unexpected failure escaped a route/date group.

    Every alert of the group that is still PENDING is failed when this is raised.
    """


class PushDeliveryError(SeatAlertError):
    """The push provider rejected or could not accept a notification."""

    def __init__(self, message: str, *, device_not_registered: bool = False) -> None:
        super().__init__(message)
        self.device_not_registered = device_not_registered
