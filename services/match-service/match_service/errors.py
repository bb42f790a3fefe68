class PreconditionError(Exception):
    """Requester cannot be matched until they fix their own data (address, schedule)."""


class DataIntegrityError(Exception):
    """A record that upstream validation should have rejected reached the engine."""


class MatchStoreError(Exception):
    """Match results could not be persisted; nothing was replaced."""


class MatchComputationBusy(Exception):
    pass
