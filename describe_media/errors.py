from __future__ import annotations

class DescribeMediaError(Exception):
    """Base error for the describe-media pipeline."""


class ModelUnavailableError(DescribeMediaError):
    """Raised when the model endpoint is unreachable or answers with no usable payload.

    Fatal for the whole run: the endpoint is a required local dependency.
    """


class ImageFetchError(DescribeMediaError):
    """Raised when the bytes of an image cannot be downloaded."""


class CatalogError(DescribeMediaError):
    """Raised when the media catalog cannot be listed."""


class StoreWriteError(DescribeMediaError):
    """Raised when an annotation cannot be written to the store of record."""


class CheckpointError(DescribeMediaError, OSError):
    """Raised when the checkpoint file cannot be created or written."""
