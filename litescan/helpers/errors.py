"""Exception hierarchy shared by the reader, indexer, cache and query layers."""


class LitescanError(Exception):
    """Base class for all litescan errors."""


class NodeUnreachable(LitescanError):
    """The node could not be reached or did not answer in time."""


class NotFound(LitescanError):
    """The node answered but the requested object does not exist."""


class RPCError(LitescanError):
    """The node returned a JSON-RPC error object."""

    def __init__(self, method: str, error: object) -> None:
        self.method = method
        self.error = error
        super().__init__(f"RPC error from {method}: {error}")


class BlockFetchFailed(LitescanError):
    """A block could not be fetched after all attempts."""

    def __init__(self, number: int, cause: BaseException | None = None) -> None:
        self.number = number
        self.cause = cause
        super().__init__(f"Block {number} could not be fetched: {cause}")


class ContractProbeFailed(LitescanError):
    """A single ERC-20 read call failed or returned undecodable data."""

    def __init__(self, address: str, method: str, cause: object = None) -> None:
        self.address = address
        self.method = method
        super().__init__(f"{method}() on {address} failed: {cause}")


class CacheCorrupt(LitescanError):
    """Persisted cache state exists but cannot be parsed."""


class PersistError(LitescanError):
    """Persisting the cache failed; the previous state is left in place."""


class InvalidQueryParameter(LitescanError):
    """A query-surface caller asked for an unknown view or a bad argument."""


__all__ = [
    "BlockFetchFailed",
    "CacheCorrupt",
    "ContractProbeFailed",
    "InvalidQueryParameter",
    "LitescanError",
    "NodeUnreachable",
    "NotFound",
    "PersistError",
    "RPCError",
]
