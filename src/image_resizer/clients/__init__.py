"""Clients for the network and storage collaborators."""

from .headers import BrowserHeaderGenerator
from .http import HttpxFetcher
from .s3 import S3BlobStore, S3Dataset

__all__ = [
    "BrowserHeaderGenerator",
    "HttpxFetcher",
    "S3BlobStore",
    "S3Dataset",
]
