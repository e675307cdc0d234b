"""Exceptions raised by slicefx."""


class InvalidStoreError(ValueError):
    """The initial state was rejected by the store's validate function."""
