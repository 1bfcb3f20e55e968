class RecordStoreError(Exception):
    """Raised when the record store cannot serve a read or write."""


class AggregateUnsupported(RecordStoreError):
    """The store cannot compute the requested aggregate for this filter shape."""
