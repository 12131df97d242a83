"""Errors raised by the alert notification job."""


class NotificationError(Exception):
    """Base class for notification job failures."""


class RecipientFetchError(NotificationError):
    """The recipient list could not be loaded; the whole run is aborted."""


class RuleDataFetchError(NotificationError):
    """Data needed by one rule could not be loaded for a recipient."""

    def __init__(self, rule: str, message: str):
        super().__init__(f"{rule}: {message}")
        self.rule = rule


class RunInProgressError(NotificationError):
    """A previous run of the job has not finished yet."""


class RunLockError(NotificationError):
    """The shared run lock could not be checked, so the run does not start."""
