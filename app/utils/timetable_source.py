"""Locate and download the published timetable spreadsheet.

The timetable page is a Google Sites page with a download button; the button's
container ``div`` has an id that starts with a configured prefix, and its
anchor carries a site-relative ``href``.
"""
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

import requests
from bs4 import BeautifulSoup
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.utils.timetable_errors import DownloadFailed, LinkNotFound, SourceUnavailable

logger = logging.getLogger("app.timetable")


def _retrying(exc_type, attempts: int) -> Retrying:
    return Retrying(
        retry=retry_if_exception_type(exc_type),
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=1, max=10),
        reraise=True,
    )


def _join_host(site_host: str, href: str) -> str:
    if href.startswith(("http://", "https://")):
        return href
    return site_host + href


def fetch_page(page_url: str, *, timeout: float, session=None) -> str:
    http = session or requests
    try:
        resp = http.get(page_url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.warning("timetable page fetch failed url=%s err=%s", page_url, e)
        raise SourceUnavailable(f"cannot fetch {page_url}: {e}") from e
    return resp.text


def find_download_href(html: str, element_id_prefix: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    anchor = soup.select_one(f'div[id^="{element_id_prefix}"] > a')
    if anchor is None or not anchor.get("href"):
        raise LinkNotFound(f"no download link under div[id^={element_id_prefix}]")
    return anchor["href"]


def resolve_download_link(
    page_url: str,
    element_id_prefix: str,
    *,
    site_host: str,
    timeout: float,
    attempts: int = 1,
    session=None,
) -> str:
    for attempt in _retrying(SourceUnavailable, attempts):
        with attempt:
            html = fetch_page(page_url, timeout=timeout, session=session)

    href = find_download_href(html, element_id_prefix)
    link = _join_host(site_host, href)
    logger.info("timetable download link resolved: %s", link)
    return link


def _stream_to_file(url: str, dest: Path, *, timeout: float, chunk_size: int, session) -> int:
    http = session or requests
    # write next to dest, swap in only once the body is complete
    try:
        fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.", suffix=".part")
    except OSError as e:
        raise DownloadFailed(f"cannot write to {dest.parent}: {e}") from e
    written = 0
    try:
        with os.fdopen(fd, "wb") as out:
            with http.get(url, stream=True, timeout=timeout) as resp:
                resp.raise_for_status()
                for chunk in resp.iter_content(chunk_size=chunk_size):
                    if chunk:
                        out.write(chunk)
                        written += len(chunk)
        os.replace(tmp_name, dest)
    except (requests.RequestException, OSError) as e:
        Path(tmp_name).unlink(missing_ok=True)
        logger.warning("timetable download failed url=%s err=%s", url, e)
        raise DownloadFailed(f"cannot download {url}: {e}") from e
    return written


def download_file(
    url: str,
    dest_path,
    *,
    timeout: float,
    chunk_size: int = 64 * 1024,
    attempts: int = 1,
    session: Optional[requests.Session] = None,
) -> Path:
    dest = Path(dest_path)
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DownloadFailed(f"cannot create {dest.parent}: {e}") from e

    for attempt in _retrying(DownloadFailed, attempts):
        with attempt:
            size = _stream_to_file(url, dest, timeout=timeout, chunk_size=chunk_size, session=session)

    logger.info("timetable downloaded to %s (%d bytes)", dest, size)
    return dest
