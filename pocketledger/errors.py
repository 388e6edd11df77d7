class PocketLedgerError(Exception):
    """Base class for errors raised inside the bot."""


class MalformedOperationError(PocketLedgerError):
    """The model called a tool with arguments we can't decode."""


class RegistrationError(PocketLedgerError):
    """A transaction could not be written to the ledger."""


class TranscriptionError(PocketLedgerError):
    """Speech-to-text returned an unusable result."""
