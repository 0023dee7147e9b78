"""HTTP client for NVIDIA's download indexes and installers."""

import logging
import pathlib

import beartype
import requests

import cudaup.errors

logger = logging.getLogger(__name__)

DOWNLOAD_BASE = "https://developer.download.nvidia.com/compute/cuda"
ARCHIVE_PAGE_URL = "https://developer.nvidia.com/cuda-toolkit-archive"

_USER_AGENT = "cudaup"
_TIMEOUT = 30


class NvidiaClient:
    """Thin requests wrapper. One session per run; nothing is cached."""

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", _USER_AGENT)

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "NvidiaClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @beartype.beartype
    def get_text(self, url: str) -> str:
        """GET a page and return its body. Anything but 200 is an UpstreamFetchError."""
        logger.debug("GET %s", url)
        response = self._request("GET", url, stream=False)
        if response.status_code != 200:
            raise cudaup.errors.UpstreamFetchError.make(
                url, response.status_code, response.reason or ""
            )
        return response.text

    @beartype.beartype
    def exists(self, url: str) -> bool:
        """Probe a URL with HEAD. Transport errors count as missing."""
        logger.debug("HEAD %s", url)
        try:
            response = self._request("HEAD", url, stream=False)
        except cudaup.errors.UpstreamFetchError as err:
            logger.debug("HEAD %s failed: %s", url, err.message)
            return False
        return response.status_code == 200

    @beartype.beartype
    def download(self, url: str, dest_fpath: pathlib.Path) -> None:
        """Stream url to dest_fpath."""
        logger.debug("Downloading %s to %s", url, dest_fpath)
        response = self._request("GET", url, stream=True)
        if response.status_code != 200:
            raise cudaup.errors.UpstreamFetchError.make(
                url, response.status_code, response.reason or ""
            )

        dest_fpath.parent.mkdir(parents=True, exist_ok=True)
        with dest_fpath.open("wb") as fd:
            for chunk in response.iter_content(chunk_size=1024 * 1024):
                if not chunk:
                    continue
                fd.write(chunk)

    @beartype.beartype
    def _request(self, method: str, url: str, *, stream: bool) -> requests.Response:
        """Perform a single request. No retries; the transport timeout is the only bound."""
        try:
            return self._session.request(
                method,
                url,
                timeout=_TIMEOUT,
                stream=stream,
                allow_redirects=True,
            )
        except requests.RequestException as err:
            raise cudaup.errors.UpstreamFetchError.make(url, None, str(err)) from None


@beartype.beartype
def get_download_url(version: str, dirname: str, filename: str) -> str:
    """URL of a file under a release's download directory."""
    return f"{DOWNLOAD_BASE}/{version}/{dirname}/{filename}"
