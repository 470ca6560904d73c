"""Randomized, browser-like request headers."""

import random
from typing import Dict, List, Optional, Tuple

from ..core.exceptions import ConfigurationError

_CHROMIUM_VERSIONS = range(120, 132)
_FIREFOX_VERSIONS = range(121, 134)

_PLATFORM_TOKENS = {
    "windows": "Windows NT 10.0; Win64; x64",
    "macos": "Macintosh; Intel Mac OS X 10_15_7",
    "linux": "X11; Linux x86_64",
}

_FIREFOX_PLATFORM_TOKENS = {
    "windows": "Windows NT 10.0; Win64; x64",
    "macos": "Macintosh; Intel Mac OS X 10.15",
    "linux": "X11; Linux x86_64",
}

_CLIENT_HINT_PLATFORMS = {"windows": "Windows", "macos": "macOS", "linux": "Linux"}

_CHROMIUM_ACCEPT = (
    "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
    "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
)
_FIREFOX_ACCEPT = (
    "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8"
)

SUPPORTED_BROWSERS = ("chrome", "firefox", "edge")
SUPPORTED_OPERATING_SYSTEMS = tuple(_PLATFORM_TOKENS)
SUPPORTED_DEVICES = ("desktop",)


def accept_language(locales: List[str]) -> str:
    """Build an Accept-Language value, e.g. ["en-US"] -> "en-US,en;q=0.9"."""
    tags: List[str] = []
    for locale in locales:
        for tag in (locale, locale.split("-")[0]):
            if tag not in tags:
                tags.append(tag)
    parts = [tags[0]]
    for position, tag in enumerate(tags[1:], start=1):
        parts.append(f"{tag};q={max(0.1, 1 - position / 10):.1f}")
    return ",".join(parts)


class BrowserHeaderGenerator:
    """Produces a plausible desktop browser header set per call.

    Every call picks a browser, OS and version at random within the given
    families; the result depends on nothing but its arguments and the RNG.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def get_headers(
        self,
        browsers: Optional[List[str]] = None,
        operating_systems: Optional[List[str]] = None,
        devices: Optional[List[str]] = None,
        locales: Optional[List[str]] = None,
    ) -> Dict[str, str]:
        """
        Generate one header set.

        Raises:
            ConfigurationError: If a constraint names no supported family
        """
        browser = self._pick(browsers, SUPPORTED_BROWSERS, "browsers")
        system = self._pick(operating_systems, SUPPORTED_OPERATING_SYSTEMS, "operating systems")
        self._pick(devices, SUPPORTED_DEVICES, "devices")

        user_agent, client_hints = self._user_agent(browser, system)
        headers = {
            "User-Agent": user_agent,
            "Accept": _FIREFOX_ACCEPT if browser == "firefox" else _CHROMIUM_ACCEPT,
            "Accept-Language": accept_language(locales or ["en-US"]),
            "Accept-Encoding": "gzip, deflate",
            "Upgrade-Insecure-Requests": "1",
        }
        headers.update(client_hints)
        return headers

    def _pick(self, requested: Optional[List[str]], supported: Tuple[str, ...], label: str) -> str:
        candidates = [name for name in (requested or supported) if name in supported]
        if not candidates:
            raise ConfigurationError(
                f"No supported {label} in {requested}; expected any of {list(supported)}"
            )
        return self._rng.choice(candidates)

    def _user_agent(self, browser: str, system: str) -> Tuple[str, Dict[str, str]]:
        if browser == "firefox":
            version = self._rng.choice(_FIREFOX_VERSIONS)
            token = _FIREFOX_PLATFORM_TOKENS[system]
            return (
                f"Mozilla/5.0 ({token}; rv:{version}.0) Gecko/20100101 Firefox/{version}.0",
                {},
            )

        version = self._rng.choice(_CHROMIUM_VERSIONS)
        user_agent = (
            f"Mozilla/5.0 ({_PLATFORM_TOKENS[system]}) AppleWebKit/537.36 "
            f"(KHTML, like Gecko) Chrome/{version}.0.0.0 Safari/537.36"
        )
        brand = "Google Chrome"
        if browser == "edge":
            user_agent += f" Edg/{version}.0.0.0"
            brand = "Microsoft Edge"

        client_hints = {
            "sec-ch-ua": f'"Chromium";v="{version}", "{brand}";v="{version}", "Not?A_Brand";v="99"',
            "sec-ch-ua-mobile": "?0",
            "sec-ch-ua-platform": f'"{_CLIENT_HINT_PLATFORMS[system]}"',
        }
        return user_agent, client_hints
