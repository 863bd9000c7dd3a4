"""Error taxonomy shared by the retrieval, chat and voting services."""


class CampusError(Exception):
    """Base exception for all Campus Connect errors."""

    pass


class ValidationError(CampusError):
    """Raised when caller input has the wrong shape or value."""

    pass


class NotFound(CampusError):
    """Raised when a referenced entity does not exist."""

    pass


class Forbidden(CampusError):
    """Raised when the acting user may not perform the operation."""

    pass


class SelfVoteForbidden(Forbidden):
    """Raised when a user votes on their own post."""

    pass


class ProviderUnavailable(CampusError):
    """Raised when the embedding or generative provider fails."""

    pass


class EmbeddingUnavailable(ProviderUnavailable):
    """Raised when a query or post embedding cannot be produced."""

    pass


class DimensionMismatch(CampusError):
    """Raised when two compared vectors have different lengths."""

    def __init__(self, left: int, right: int) -> None:
        super().__init__(f"Vector dimensions differ: {left} != {right}")
        self.left = left
        self.right = right


class RAGFailure(CampusError):
    """Raised when a chat turn cannot produce an answer."""

    pass
