"""
Lectures feature: SSRF guard for lecture stream URLs.

ffmpeg will happily fetch any URL it is given, so stream URLs must be HTTPS,
must not point at internal addresses, and must be on a Panopto (or Panopto
CDN) host.
"""

import ipaddress
from urllib.parse import urlparse

from studybuddy.config import get_settings
from studybuddy.features.lectures.schemas import UrlValidationResult

ALLOWED_SCHEMES = {"https"}

# Suffix match; e.g. university.hosted.panopto.com
ALLOWED_DOMAIN_SUFFIXES = (
    ".panopto.com",
    ".panopto.eu",
    ".panopto-content.com",
    ".cloudfront.net",
)

BLOCKED_HOSTNAMES = {"localhost", "metadata.google.internal"}
LOCAL_HOSTNAMES = {"localhost", "127.0.0.1"}


def _is_internal(hostname: str) -> bool:
    if hostname in BLOCKED_HOSTNAMES:
        return True
    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_reserved or ip.is_unspecified


def validate_stream_url(url: str) -> UrlValidationResult:
    """Check a stream URL before handing it to ffmpeg."""
    try:
        parsed = urlparse(url)
        hostname = (parsed.hostname or "").lower()
    except ValueError:
        return UrlValidationResult(valid=False, error="Invalid URL format")

    if not parsed.scheme or not hostname:
        return UrlValidationResult(valid=False, error="Invalid URL format")

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return UrlValidationResult(valid=False, error="Invalid URL scheme: only HTTPS is allowed")

    if get_settings().ALLOW_LOCAL_STREAMS and hostname in LOCAL_HOSTNAMES:
        return UrlValidationResult(valid=True)

    if _is_internal(hostname):
        return UrlValidationResult(valid=False, error="URL points to a private or internal address")

    if not hostname.endswith(ALLOWED_DOMAIN_SUFFIXES):
        return UrlValidationResult(
            valid=False,
            error="URL domain is not in the allowed list (only Panopto domains are permitted)",
        )

    return UrlValidationResult(valid=True)
