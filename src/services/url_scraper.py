"""URL scraping service for fetching and extracting page metadata."""
import asyncio
import ipaddress
import logging
import socket
from dataclasses import dataclass
from io import BytesIO
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup
from pypdf import PdfReader

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (compatible; BookmarkBot/1.0)'
DEFAULT_TIMEOUT = 10.0
DEFAULT_RETRIES = 2


class SSRFBlockedError(Exception):
    """Raised when a URL targets a private/internal network address."""

    pass


def is_private_ip(ip_str: str) -> bool:
    """
    Check if an IP address is private, loopback, or otherwise internal.

    Args:
        ip_str: IP address string (IPv4 or IPv6).

    Returns:
        True if the IP is private/internal, False if public.
    """
    try:
        ip = ipaddress.ip_address(ip_str)
        return (
            ip.is_private
            or ip.is_loopback
            or ip.is_link_local
            or ip.is_multicast
            or ip.is_reserved
            or ip.is_unspecified
        )
    except ValueError:
        # Unparseable addresses are treated as internal
        return True


async def validate_url_not_private(url: str) -> None:
    """
    Validate that a URL does not target a private/internal network.

    Resolves the hostname to check the actual IP address, so a public name
    pointing at an internal address is also refused.

    Raises:
        SSRFBlockedError: If the URL targets a private network.
        ValueError: If the URL is malformed or the host doesn't resolve.
    """
    parsed = urlparse(url)
    hostname = parsed.hostname

    if not hostname:
        raise ValueError(f"Invalid URL (no hostname): {url}")

    if hostname.lower() in ('localhost', 'localhost.localdomain'):
        raise SSRFBlockedError(f"Blocked request to localhost: {url}")

    try:
        addrinfo = await asyncio.get_running_loop().getaddrinfo(
            hostname, None, family=socket.AF_UNSPEC, type=socket.SOCK_STREAM,
        )
    except socket.gaierror as e:
        raise ValueError(f"Could not resolve hostname: {hostname}") from e
    for _family, _, _, _, sockaddr in addrinfo:
        ip_str = sockaddr[0]
        if is_private_ip(ip_str):
            raise SSRFBlockedError(
                f"Blocked request to private/internal address: {url} resolves to {ip_str}",
            )


@dataclass
class FetchResult:
    """Result of fetching a URL (raw content before extraction)."""

    content: str | bytes | None  # str for HTML, bytes for PDF
    final_url: str
    status_code: int | None
    content_type: str | None
    error: str | None
    retryable: bool = False

    @property
    def is_pdf(self) -> bool:
        """Check if the content type indicates a PDF."""
        return bool(self.content_type and 'application/pdf' in self.content_type.lower())

    @property
    def is_html(self) -> bool:
        """Check if the content type indicates HTML."""
        return bool(self.content_type and 'text/html' in self.content_type.lower())


@dataclass
class ExtractedMetadata:
    """Metadata extracted from an HTML page or PDF document."""

    title: str | None
    description: str | None
    image: str | None = None
    site_name: str | None = None


@dataclass
class PageMetadata:
    """Result of scraping a URL for metadata."""

    metadata: ExtractedMetadata | None
    final_url: str
    error: str | None


def _failure(url: str, error: str, status_code: int | None = None,
             content_type: str | None = None, retryable: bool = False) -> FetchResult:
    return FetchResult(
        content=None,
        final_url=url,
        status_code=status_code,
        content_type=content_type,
        error=error,
        retryable=retryable,
    )


async def fetch_url(url: str, timeout: float = DEFAULT_TIMEOUT) -> FetchResult:  # noqa: ASYNC109, PLR0911
    """
    Fetch content from a URL (HTML or PDF) in a single attempt.

    Best-effort fetch that returns error info on failure rather than raising.
    Follows redirects and captures the final URL. Both the requested URL and
    the final URL after redirects are checked against private networks.

    Args:
        url: The URL to fetch.
        timeout: Request timeout in seconds.

    Returns:
        FetchResult containing content (str for HTML, bytes for PDF) or error
        info. ``retryable`` is set for timeouts, connection errors and 5xx.
    """
    try:
        await validate_url_not_private(url)
    except (SSRFBlockedError, ValueError) as e:
        return _failure(url, str(e))

    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=timeout,
            headers={'User-Agent': USER_AGENT},
            http2=True,
        ) as client:
            response = await client.get(url)

            final_url_str = str(response.url)
            try:
                await validate_url_not_private(final_url_str)
            except (SSRFBlockedError, ValueError) as e:
                return _failure(final_url_str, f"Redirect blocked: {e}", response.status_code)

            content_type = response.headers.get('content-type', '')

            if not response.is_success:
                return _failure(
                    final_url_str,
                    f"HTTP {response.status_code}",
                    response.status_code,
                    content_type,
                    retryable=response.status_code >= 500,
                )

            if 'application/pdf' in content_type.lower():
                content: str | bytes = response.content
            elif 'text/html' in content_type.lower():
                content = response.text
            else:
                return _failure(
                    final_url_str,
                    f"Unsupported content type: {content_type}",
                    response.status_code,
                    content_type,
                )
            return FetchResult(
                content=content,
                final_url=final_url_str,
                status_code=response.status_code,
                content_type=content_type,
                error=None,
            )
    except httpx.TimeoutException:
        return _failure(url, "Request timed out", retryable=True)
    except httpx.RequestError as e:
        return _failure(url, f"Request failed: {e}", retryable=True)


async def fetch_url_with_retries(
    url: str,
    timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
    retries: int = DEFAULT_RETRIES,
) -> FetchResult:
    """
    Fetch a URL, retrying transient failures up to ``retries`` more times.

    Blocked, client-error and unsupported-content results are returned
    immediately.
    """
    result = await fetch_url(url, timeout)
    attempt = 0
    while result.error and result.retryable and attempt < retries:
        attempt += 1
        logger.info("Retrying fetch of %s (attempt %d): %s", url, attempt + 1, result.error)
        result = await fetch_url(url, timeout)
    return result


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str | None:
    tag = soup.find('meta', attrs=attrs)
    if tag and tag.get('content'):
        value = tag['content'].strip()
        return value or None
    return None


def extract_html_metadata(html: str, base_url: str | None = None) -> ExtractedMetadata:
    """
    Extract title, description, image and site name from HTML.

    Pure function with no I/O. Uses BeautifulSoup for parsing.

    Title priority: og:title, twitter:title, <title>.
    Description priority: og:description, twitter:description, meta description.
    Image priority: og:image, twitter:image. Relative image URLs are resolved
    against ``base_url``.

    Args:
        html: Raw HTML string to parse.
        base_url: URL the page was served from.

    Returns:
        ExtractedMetadata; fields may be None if not found.
    """
    soup = BeautifulSoup(html, 'lxml')

    title = (
        _meta_content(soup, property='og:title')
        or _meta_content(soup, name='twitter:title')
    )
    if not title:
        title_tag = soup.find('title')
        if title_tag and title_tag.string:
            title = title_tag.string.strip() or None

    description = (
        _meta_content(soup, property='og:description')
        or _meta_content(soup, name='twitter:description')
        or _meta_content(soup, name='description')
    )

    image = (
        _meta_content(soup, property='og:image')
        or _meta_content(soup, name='twitter:image')
    )
    if image and base_url:
        image = urljoin(base_url, image)

    site_name = _meta_content(soup, property='og:site_name')

    return ExtractedMetadata(
        title=title,
        description=description,
        image=image,
        site_name=site_name,
    )


def extract_pdf_metadata(pdf_bytes: bytes) -> ExtractedMetadata:
    """
    Extract title and description from PDF document metadata.

    Uses the /Title and /Subject metadata fields. PDF metadata is often missing
    or auto-generated junk, so expect None values frequently.
    """
    try:
        reader = PdfReader(BytesIO(pdf_bytes))
        meta = reader.metadata

        title = meta.title if meta and meta.title else None
        description = meta.subject if meta and meta.subject else None

        return ExtractedMetadata(title=title, description=description)
    except Exception:
        logger.debug("Could not read PDF metadata", exc_info=True)
        return ExtractedMetadata(title=None, description=None)


async def scrape_metadata(
    url: str,
    timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
    retries: int = DEFAULT_RETRIES,
) -> PageMetadata:
    """
    Fetch a URL and extract its metadata.

    Routes to the HTML or PDF extractor based on content type. Never raises
    for network or parse failures; ``error`` describes what went wrong.
    """
    result = await fetch_url_with_retries(url, timeout, retries)

    if result.error:
        return PageMetadata(metadata=None, final_url=result.final_url, error=result.error)

    if result.is_pdf:
        metadata = extract_pdf_metadata(result.content)
    else:
        try:
            metadata = extract_html_metadata(result.content, result.final_url)
        except Exception as e:
            logger.warning("Failed to parse HTML from %s: %s", result.final_url, e)
            return PageMetadata(
                metadata=None,
                final_url=result.final_url,
                error=f"Parse failed: {e}",
            )

    return PageMetadata(metadata=metadata, final_url=result.final_url, error=None)
