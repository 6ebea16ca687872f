"""
Model Fetcher Module
Validates, downloads and installs whisper.cpp model files from a fixed set
of trusted hosts.

Every request hop is checked before it is made: HTTPS only, allow-listed
host only, at most MAX_REDIRECTS redirects. The body is streamed to a
".part" file and renamed into place only after it was fully written, so a
file at the model path is always a complete download.
"""

import argparse
import logging
import os
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Union
from urllib.parse import urljoin, urlsplit

import requests

from openvoice.exceptions import (
    DownloadHTTPError,
    InvalidModelNameError,
    OpenVoiceError,
    PathTraversalError,
    TooManyRedirectsError,
    TransportError,
    TrustError,
    UnknownModelError,
)


logger = logging.getLogger(__name__)

ALLOWED_DOWNLOAD_HOSTS = frozenset({
    "huggingface.co",
    "cdn-lfs.huggingface.co",
    "cdn-lfs-us-1.huggingface.co",
    "cas-bridge.xethub.hf.co",
})

_WHISPER_CPP_BASE = "https://huggingface.co/ggerganov/whisper.cpp/resolve/main"

MODEL_URLS = {
    "ggml-distil-large-v3.5.bin":
        "https://huggingface.co/distil-whisper/distil-large-v3.5-ggml/resolve/main/ggml-model.bin",
    "ggml-tiny.en.bin": f"{_WHISPER_CPP_BASE}/ggml-tiny.en.bin",
    "ggml-base.en.bin": f"{_WHISPER_CPP_BASE}/ggml-base.en.bin",
    "ggml-small.en.bin": f"{_WHISPER_CPP_BASE}/ggml-small.en.bin",
}

DEFAULT_MODEL = "ggml-distil-large-v3.5.bin"
MODELS_SUBDIR = "models"
MAX_REDIRECTS = 10
CHUNK_SIZE = 1024 * 1024

_MODEL_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
_REDIRECT_STATUSES = {301, 302, 303, 307, 308}


@dataclass(frozen=True)
class DownloadProgress:
    """Snapshot of a running download."""
    downloaded: int
    total: int
    percent: int


@dataclass(frozen=True)
class ModelArtifact:
    """A known model and where it lives locally."""
    name: str
    url: str
    path: Path

    @property
    def installed(self) -> bool:
        return self.path.is_file()


ProgressCallback = Callable[[DownloadProgress], None]


def get_model_url(model_name: str) -> Optional[str]:
    """Return the hardcoded download URL for a model, or None if unknown."""
    return MODEL_URLS.get(model_name)


def validate_model_name(model_name: str) -> str:
    """
    Check a model identifier against the allowed filename pattern.

    Raises:
        InvalidModelNameError: If the name could address anything outside a
            single file in the models directory.
    """
    if (
        not isinstance(model_name, str)
        or "/" in model_name
        or "\\" in model_name
        or ".." in model_name
        or not _MODEL_NAME_PATTERN.match(model_name)
    ):
        raise InvalidModelNameError(f"Invalid model name: {model_name!r}")
    return model_name


def models_dir(base_dir: Union[str, Path]) -> Path:
    """Directory holding installed models under the app data dir."""
    return Path(os.path.abspath(Path(base_dir) / MODELS_SUBDIR))


def resolve_model_path(base_dir: Union[str, Path], model_name: str) -> Path:
    """
    Resolve the local path of a model file.

    Args:
        base_dir: Application data directory
        model_name: Model filename, e.g. "ggml-base.en.bin"

    Returns:
        Absolute path inside <base_dir>/models.

    Raises:
        InvalidModelNameError: If the name fails validation.
        PathTraversalError: If the resolved path is not inside the models dir.
    """
    validate_model_name(model_name)
    root = models_dir(base_dir)
    resolved = Path(os.path.abspath(root / model_name))
    if resolved.parent != root:
        raise PathTraversalError(f"Path traversal detected in model name: {model_name!r}")
    return resolved


def model_exists(base_dir: Union[str, Path], model_name: str) -> bool:
    """Whether the model file is installed."""
    return resolve_model_path(base_dir, model_name).is_file()


def list_models(base_dir: Union[str, Path]) -> List[ModelArtifact]:
    """All known models with their local paths."""
    return [
        ModelArtifact(name=name, url=url, path=resolve_model_path(base_dir, name))
        for name, url in sorted(MODEL_URLS.items())
    ]


def check_url_trusted(url: str) -> None:
    """
    Raise TrustError unless url is HTTPS on an allow-listed host.
    """
    try:
        parsed = urlsplit(url)
        host = parsed.hostname
    except ValueError as e:
        raise TrustError(f"Invalid URL: {url}") from e

    if parsed.scheme != "https":
        raise TrustError("Only HTTPS downloads are allowed")
    if host not in ALLOWED_DOWNLOAD_HOSTS:
        raise TrustError(f"Untrusted download host: {host}")


def _percent(downloaded: int, total: int) -> int:
    # Round half up
    return (downloaded * 200 + total) // (2 * total)


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.debug(f"Could not remove {path}: {e}")


def _open_final_response(
    session: requests.Session,
    url: str,
    timeout: Optional[float],
) -> requests.Response:
    """Follow redirects manually, validating every hop."""
    redirects = 0
    while True:
        if redirects > MAX_REDIRECTS:
            raise TooManyRedirectsError("Too many redirects")

        check_url_trusted(url)
        logger.debug(f"GET {url}")

        try:
            response = session.get(url, stream=True, allow_redirects=False, timeout=timeout)
        except requests.RequestException as e:
            raise TransportError(f"Download request failed: {e}") from e

        location = response.headers.get("Location")
        if response.status_code in _REDIRECT_STATUSES and location:
            response.close()
            url = urljoin(url, location)
            redirects += 1
            continue

        return response


def _stream_to_file(
    response: requests.Response,
    destination: Path,
    on_progress: Optional[ProgressCallback],
    chunk_size: int,
) -> None:
    try:
        total = int(response.headers.get("Content-Length") or 0)
    except ValueError:
        total = 0

    downloaded = 0
    with open(destination, "wb") as f:
        try:
            for chunk in response.iter_content(chunk_size=chunk_size):
                if not chunk:
                    continue
                f.write(chunk)
                downloaded += len(chunk)
                if on_progress is not None and total > 0:
                    on_progress(DownloadProgress(
                        downloaded=downloaded,
                        total=total,
                        percent=_percent(downloaded, total),
                    ))
        except requests.RequestException as e:
            raise TransportError(f"Download interrupted: {e}") from e


def fetch_model(
    base_dir: Union[str, Path],
    model_name: str,
    on_progress: Optional[ProgressCallback] = None,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
    chunk_size: int = CHUNK_SIZE,
) -> Path:
    """
    Download a known model into <base_dir>/models.

    Args:
        base_dir: Application data directory
        model_name: Key of MODEL_URLS
        on_progress: Called per received chunk when the size is known
        session: Optional requests session (one is created if omitted)
        timeout: Passed to requests; None leaves it to the transport
        chunk_size: Bytes per streamed chunk

    Returns:
        Path of the installed model.

    Raises:
        InvalidModelNameError, PathTraversalError, UnknownModelError: Before
            any network or filesystem access.
        TrustError: A hop uses a disallowed scheme or host.
        TooManyRedirectsError: More than MAX_REDIRECTS redirects.
        DownloadHTTPError: Final response is not 2xx.
        TransportError: Any other network failure.
        OSError: Filesystem failure.
    """
    validate_model_name(model_name)
    url = get_model_url(model_name)
    if url is None:
        raise UnknownModelError(f"Unknown model: {model_name}")

    destination = resolve_model_path(base_dir, model_name)
    partial = destination.with_name(destination.name + ".part")

    own_session = session is None
    if own_session:
        session = requests.Session()

    logger.info(f"Downloading model '{model_name}' from {url}")
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        response = _open_final_response(session, url, timeout)
        try:
            if not 200 <= response.status_code < 300:
                raise DownloadHTTPError(response.status_code)
            _stream_to_file(response, partial, on_progress, chunk_size)
        finally:
            response.close()
        os.replace(partial, destination)
    except BaseException:
        _remove_quietly(partial)
        raise
    finally:
        if own_session:
            session.close()

    logger.info(f"Model '{model_name}' installed at {destination}")
    return destination


# =============================================================================
# COMMAND LINE
# =============================================================================

def _default_data_dir() -> Path:
    return Path(os.environ.get("OPENVOICE_DATA_DIR") or Path.home() / ".openvoice")


def print_progress(progress: DownloadProgress) -> None:
    mb_done = progress.downloaded / (1024 * 1024)
    mb_total = progress.total / (1024 * 1024)
    print(f"\r  {progress.percent:3d}%  {mb_done:8.1f} / {mb_total:.1f} MB", end="", flush=True)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the openvoice-models command."""
    parser = argparse.ArgumentParser(
        prog="openvoice-models",
        description="List and download whisper.cpp models for OpenVoice.",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Application data directory (default: $OPENVOICE_DATA_DIR or ~/.openvoice)",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="Show known models and whether they are installed")
    path_cmd = sub.add_parser("path", help="Print the local path of a model")
    path_cmd.add_argument("model")
    download_cmd = sub.add_parser("download", help="Download a model")
    download_cmd.add_argument("model", nargs="?", default=DEFAULT_MODEL)

    args = parser.parse_args(argv)
    data_dir = args.data_dir or _default_data_dir()

    try:
        if args.command == "list":
            for artifact in list_models(data_dir):
                marker = "installed" if artifact.installed else "-"
                print(f"{artifact.name:<32} {marker}")
        elif args.command == "path":
            print(resolve_model_path(data_dir, args.model))
        elif args.command == "download":
            print(f"Downloading '{args.model}'...")
            path = fetch_model(data_dir, args.model, on_progress=print_progress)
            print(f"\nModel ready at: {path}")
    except OpenVoiceError as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
