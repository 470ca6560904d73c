"""Testing utilities and fakes for the image resizer."""

from .fakes import (
    FakeBlobStore,
    FakeDataset,
    FakeFetcher,
    FakeHeaderGenerator,
    FakeLogger,
    StoredObject,
    create_test_image,
    setup_test_store_environment,
)

__all__ = [
    "FakeBlobStore",
    "FakeDataset",
    "FakeFetcher",
    "FakeHeaderGenerator",
    "FakeLogger",
    "StoredObject",
    "create_test_image",
    "setup_test_store_environment",
]
