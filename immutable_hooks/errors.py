"""Exception types raised by the collection host, the draft engine and frozen records."""


class CollectionError(Exception):
    """Base class for collection host failures."""


class DocumentNotFoundError(CollectionError):
    """The document identity does not resolve to a stored document."""


class DocumentExistsError(CollectionError):
    """The document is already stored in the collection."""


class InvalidDocumentError(CollectionError, TypeError):
    """The operation received something that is not a document."""


class DuplicateKeyError(CollectionError):
    """A uniquely indexed field would hold the same value twice."""

    def __init__(self, field: str, value: object) -> None:
        super().__init__(f"Duplicate key for property {field}: {value}")
        self.field = field
        self.value = value


class UnknownEventError(CollectionError, KeyError):
    """A listener was added for an event name the emitter does not know."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class UnknownHookError(KeyError):
    """A hook configuration names a factory that was never registered."""


class FrozenRecordError(TypeError):
    """A frozen record or record list was mutated."""


class DraftError(Exception):
    """Misuse of the draft engine (revoked draft, missing plugin, bad input)."""
