"""
Error taxonomy for the journal integrity layer.

Messages carry ids, sequence numbers and hashes only. Entry content never
appears in an error message.
"""


class JournalError(Exception):
    """Base class for all journal integrity errors."""


class ValidationError(JournalError):
    """Malformed input, rejected before any state change."""


class ConflictError(JournalError):
    """Another writer won the race for the same (journal, sequence) slot.

    The caller should re-read the journal head and retry.
    """

    def __init__(self, message: str, journal_id: str | None = None, sequence: int | None = None):
        super().__init__(message)
        self.journal_id = journal_id
        self.sequence = sequence


class NotFoundError(JournalError):
    """Unknown journal, entry, checkpoint or certificate."""


class NotCheckpointedError(NotFoundError):
    """The entry exists but no checkpoint covers its sequence yet."""

    def __init__(self, message: str, journal_id: str | None = None, sequence: int | None = None):
        super().__init__(message)
        self.journal_id = journal_id
        self.sequence = sequence


class IntegrityError(JournalError):
    """Chain linkage or Merkle root mismatch. Never auto-repaired."""

    def __init__(
        self,
        message: str,
        *,
        sequence: int | None = None,
        checkpoint_id: str | None = None,
        expected: str | None = None,
        actual: str | None = None,
    ):
        super().__init__(message)
        self.sequence = sequence
        self.checkpoint_id = checkpoint_id
        self.expected = expected
        self.actual = actual


class WitnessError(JournalError):
    """External witness submit/verify failure."""


class WitnessTimeoutError(WitnessError):
    """A witness backend did not answer within the configured timeout."""
