"""Validation and normalization of long URLs before they are stored."""

import re
from urllib.parse import quote, urlsplit, urlunsplit

from flylinks import config
from flylinks.errors import InvalidUrlError

ALLOWED_SCHEMES = {"http", "https"}

# A character outside the unreserved and reserved URI sets, or a "%" that
# does not start an escape sequence
_UNSAFE = re.compile(r"%(?![0-9A-Fa-f]{2})|[^A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=%]")


def escape(raw_url: str) -> str:
    """Percent-encode the characters that may not appear raw in a URL.

    Existing escape sequences and reserved characters are left alone, so
    ``%09`` stays ``%09`` and ``?a=1&b='x'`` is unchanged.
    """
    return _UNSAFE.sub(lambda match: quote(match.group(0), safe=""), raw_url)


def normalize(raw_url: str) -> str:
    if not isinstance(raw_url, str) or not raw_url.strip():
        raise InvalidUrlError("URL is required")

    url = escape(raw_url.strip(" "))
    if len(url) > config.MAX_URL_LENGTH:
        raise InvalidUrlError(f"URL is too long (max {config.MAX_URL_LENGTH} characters)")

    try:
        parts = urlsplit(url)
        parts.port  # raises ValueError on a malformed port
    except ValueError as exc:
        raise InvalidUrlError(f"Invalid URL format: {exc}") from exc

    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise InvalidUrlError("URL must use http or https protocol")
    if not parts.hostname:
        raise InvalidUrlError("URL must have a valid domain")

    userinfo, at, hostport = parts.netloc.rpartition("@")
    if "%" in hostport:
        raise InvalidUrlError("URL host contains invalid characters")
    netloc = f"{userinfo}{at}{hostport.lower()}"
    return urlunsplit((scheme, netloc, parts.path or "/", parts.query, parts.fragment))
