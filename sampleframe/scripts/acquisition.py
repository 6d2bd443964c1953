"""Input acquisition: download and unpack country archives into a workspace."""

import logging
import shutil
import time
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

import requests

from sampleframe.errors import AcquisitionError, ConfigError
from sampleframe.model.config import CountryConfig

logger = logging.getLogger("sampleframe.scripts.acquisition")

RASTER_EXTENSIONS = (".tif", ".tiff", ".img", ".vrt")
VECTOR_EXTENSIONS = (".shp", ".gpkg", ".geojson", ".json")

CHUNK_SIZE = 1024 * 1024


@dataclass
class AcquiredInputs:
    """Paths of the inputs resolved for one run."""

    raster_path: Path
    admin_path: Path


def _is_remote(location: str) -> bool:
    return urlparse(location).scheme in ("http", "https")


def fetch_archive(
    url: str,
    workspace: Path,
    *,
    retries: int = 3,
    backoff: float = 1.0,
    timeout: float = 120.0,
    session: Optional[requests.Session] = None,
) -> Path:
    """Download ``url`` into ``workspace``.

    Local paths are copied. Remote downloads are retried on connection errors
    and 5xx/429 responses with exponential backoff.

    Args:
        url: HTTP(S) URL or local file path
        workspace: Target directory
        retries: Extra attempts after the first one
        backoff: Base delay in seconds, doubled at each attempt
        timeout: Per-request timeout in seconds
        session: Optional requests session

    Returns:
        Path to the downloaded file

    Raises:
        AcquisitionError: If the archive cannot be fetched
    """
    workspace = Path(workspace)
    workspace.mkdir(parents=True, exist_ok=True)

    if not _is_remote(url):
        src = Path(url)
        if not src.is_file():
            raise AcquisitionError(url, "file not found")
        dest = workspace / src.name
        if src.resolve() != dest.resolve():
            shutil.copyfile(src, dest)
        logger.info(f"Using local archive {src}")
        return dest

    name = Path(urlparse(url).path).name or "download"
    dest = workspace / name
    http = session or requests.Session()

    for attempt in range(retries + 1):
        try:
            with http.get(url, stream=True, timeout=timeout) as response:
                if response.status_code == 429 or response.status_code >= 500:
                    raise requests.exceptions.HTTPError(
                        f"HTTP {response.status_code}", response=response
                    )
                if response.status_code >= 400:
                    raise AcquisitionError(url, f"HTTP {response.status_code}")
                with dest.open("wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
            logger.info(f"Downloaded {url} -> {dest}")
            return dest
        except requests.exceptions.RequestException as e:
            if dest.exists():
                dest.unlink()
            if attempt >= retries:
                raise AcquisitionError(
                    url, f"download failed after {attempt + 1} attempts: {e}"
                ) from e
            delay = backoff * (2**attempt)
            logger.warning(
                f"Download of {url} failed ({e}); retry {attempt + 1}/{retries} in {delay:.1f}s"
            )
            time.sleep(delay)

    raise AcquisitionError(url, "download failed")


def unpack_archive(archive: Path, workspace: Path) -> List[Path]:
    """Extract a zip archive into ``workspace``.

    Returns:
        Paths of the extracted files, or ``[archive]`` if it is not a zip file
    """
    archive = Path(archive)
    if not zipfile.is_zipfile(archive):
        return [archive]

    workspace = Path(workspace)
    root = workspace.resolve()
    try:
        with zipfile.ZipFile(archive) as z:
            members = [m for m in z.infolist() if not m.is_dir()]
            for member in members:
                target = (workspace / member.filename).resolve()
                if root not in target.parents:
                    raise AcquisitionError(
                        str(archive), f"unsafe member path {member.filename}"
                    )
            z.extractall(workspace)
    except zipfile.BadZipFile as e:
        raise AcquisitionError(str(archive), f"corrupt archive: {e}") from e

    extracted = [workspace / m.filename for m in members]
    logger.info(f"Unpacked {len(extracted)} files from {archive.name}")
    return extracted


def find_input(
    workspace: Path,
    extensions,
    preferred: Optional[str] = None,
    setting: str = "the file name",
) -> Optional[Path]:
    """Locate an input file in ``workspace`` by name or extension.

    Without a preferred name exactly one file may match; boundary archives
    often ship one layer per administrative level.

    Raises:
        ConfigError: If several files match and ``preferred`` is not set
    """
    workspace = Path(workspace)
    if preferred:
        candidate = workspace / preferred
        if candidate.is_file():
            return candidate
        matches = sorted(workspace.rglob(Path(preferred).name))
        return matches[0] if matches else None

    matches = sorted(
        p
        for p in workspace.rglob("*")
        if p.is_file() and p.suffix.lower() in extensions
    )
    if len(matches) > 1:
        names = ", ".join(str(p.relative_to(workspace)) for p in matches)
        raise ConfigError(
            [f"Several candidate files in {workspace} ({names}); set {setting}"]
        )
    return matches[0] if matches else None


def _acquire_one(
    kind: str,
    url: Optional[str],
    preferred: Optional[str],
    extensions,
    workspace: Path,
    config: CountryConfig,
    session: Optional[requests.Session],
) -> Path:
    target_dir = workspace / kind
    found = find_input(target_dir, extensions, preferred, f"{kind}_file")
    if found is not None:
        logger.info(f"Reusing {kind} input {found}")
        return found

    if not url:
        raise ConfigError(
            [f"No {kind} file in {target_dir} and no {kind}_url configured"],
            source=config.name,
        )

    archive = fetch_archive(
        url,
        target_dir,
        retries=config.download_retries,
        backoff=config.download_backoff,
        timeout=config.download_timeout,
        session=session,
    )
    unpack_archive(archive, target_dir)

    found = find_input(target_dir, extensions, preferred, f"{kind}_file")
    if found is None:
        raise AcquisitionError(url, f"archive holds no {kind} file")
    return found


def acquire_inputs(
    config: CountryConfig,
    workspace: Path,
    session: Optional[requests.Session] = None,
) -> AcquiredInputs:
    """Resolve the raster stack and admin layer for ``config``.

    Inputs already present under ``workspace/raster`` and ``workspace/admin``
    are reused; otherwise the configured archives are fetched and unpacked.
    """
    workspace = Path(workspace)
    raster_path = _acquire_one(
        "raster",
        config.raster_url,
        config.raster_file,
        RASTER_EXTENSIONS,
        workspace,
        config,
        session,
    )
    admin_path = _acquire_one(
        "admin",
        config.admin_url,
        config.admin_file,
        VECTOR_EXTENSIONS,
        workspace,
        config,
        session,
    )
    return AcquiredInputs(raster_path=raster_path, admin_path=admin_path)
