from __future__ import annotations

import logging
from pathlib import Path

import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from .errors import DownloadFailed
from .utils import CHUNK_SIZE

LOGGER = logging.getLogger(__name__)

USER_AGENT = "mrpack-sync/0.1"


class MirrorFetcher:
    """Downloads one URL into one local file through a shared session.

    A non-success status is never retried here; the caller moves on to the
    next mirror instead. ``max_retries`` only covers connect and read errors.
    """

    def __init__(
        self,
        session: Session | None = None,
        timeout: int = 60,
        max_retries: int = 0,
    ) -> None:
        self.session = session if session is not None else _build_session(max_retries)
        self.timeout = timeout

    def fetch(self, url: str, destination: Path) -> None:
        LOGGER.debug("GET %s -> %s", url, destination)
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                with destination.open("wb") as handle:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            handle.write(chunk)
        except (requests.RequestException, OSError) as exc:
            raise DownloadFailed(url, exc) from exc

    def close(self) -> None:
        self.session.close()


def _build_session(max_retries: int) -> Session:
    retry = Retry(
        total=max_retries,
        connect=max_retries,
        read=max_retries,
        status=0,
        backoff_factor=0.5,
        allowed_methods=("GET",),
        raise_on_status=False,
    )
    session = requests.Session()
    session.mount("http://", HTTPAdapter(max_retries=retry))
    session.mount("https://", HTTPAdapter(max_retries=retry))
    session.headers.update({"User-Agent": USER_AGENT})
    return session
