"""Parsed image source descriptors."""

from dataclasses import dataclass
from typing import Any, List, Union

from .exceptions import ResolutionError, ResolutionErrorKind

HTTP_SCHEMES = ("http://", "https://")
STORE_SCHEME = "key-value://"


@dataclass(frozen=True)
class RemoteURL:
    """An image reachable over HTTP(S)."""

    url: str

    def __str__(self) -> str:
        return self.url


@dataclass(frozen=True)
class StoreRef:
    """An image held in a blob store under ``key``."""

    store_id: str
    key: str

    def __str__(self) -> str:
        return f"{STORE_SCHEME}{self.store_id}/{self.key}"


ImageSource = Union[RemoteURL, StoreRef]

# What parsing yields per item: a source, or the reason there is none.
ParsedSource = Union[RemoteURL, StoreRef, ResolutionError]


def parse_source(descriptor: Any) -> ImageSource:
    """
    Parse a source descriptor string into an ImageSource.

    Supported forms are ``http://...``, ``https://...`` and
    ``key-value://{storeId}/{key}``; the key may itself contain ``/``.

    Raises:
        ResolutionError: If the descriptor is not a non-empty string, uses
            an unknown scheme, or is a malformed store reference
    """
    if not isinstance(descriptor, str) or not descriptor:
        raise ResolutionError(
            ResolutionErrorKind.INVALID_SOURCE,
            "Invalid image source: must be a non-empty string",
        )

    if descriptor.startswith(HTTP_SCHEMES):
        return RemoteURL(descriptor)

    if descriptor.startswith(STORE_SCHEME):
        path = descriptor[len(STORE_SCHEME):]
        store_id, sep, key = path.partition("/")
        if not sep:
            raise ResolutionError(
                ResolutionErrorKind.MALFORMED_REFERENCE,
                "Invalid key-value:// format. Expected: key-value://{storeId}/{key}",
            )
        if not store_id or not key:
            raise ResolutionError(
                ResolutionErrorKind.MALFORMED_REFERENCE,
                "Both storeId and key must be non-empty",
            )
        return StoreRef(store_id=store_id, key=key)

    raise ResolutionError(
        ResolutionErrorKind.UNSUPPORTED_SOURCE,
        f"Unsupported image source format: {descriptor}. "
        "Must start with http://, https://, or key-value://",
    )


def parse_sources(descriptors: List[Any]) -> List[ParsedSource]:
    """Parse every descriptor of a batch up front, keeping failures in place."""
    parsed: List[ParsedSource] = []
    for descriptor in descriptors:
        try:
            parsed.append(parse_source(descriptor))
        except ResolutionError as e:
            parsed.append(e)
    return parsed
