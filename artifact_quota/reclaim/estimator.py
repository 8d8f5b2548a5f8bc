"""
Size estimation for the pending upload.

The size is taken, in priority order, from a declared size, a fixed
override, or by zipping each pending path into a temporary archive and
measuring it.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

import structlog

from ..config import validate_compression_level
from ..errors import MeasurementError

logger = structlog.get_logger()

MODE_DECLARED = "declared"
MODE_FIXED = "fixed"
MODE_MEASURED = "measured"


@dataclass
class SizeEstimate:
    """Byte footprint of the pending upload and how it was obtained."""

    size: int
    mode: str
    measured_paths: List[str] = field(default_factory=list)
    missing_paths: List[str] = field(default_factory=list)


def _iter_archive_entries(source: Path) -> Iterator[Tuple[Path, str]]:
    """Yield (file, name in archive) pairs in a stable order."""
    if not source.is_dir():
        yield source, source.name
        return

    for root, dirs, files in os.walk(source):
        dirs.sort()
        for name in sorted(files):
            path = Path(root) / name
            yield path, path.relative_to(source).as_posix()


def measure_archive_size(
    path: str, compression_level: int = 0, work_dir: Optional[str] = None
) -> int:
    """Zip ``path`` into a temporary file and return the archive's length.

    Level 0 stores entries uncompressed; 1-9 deflate at that level. The
    archive is closed before it is measured and removed afterwards. File
    times outside the zip range (before 1980) are clamped.

    Raises:
        MeasurementError: If any entry cannot be read or written
    """
    if compression_level == 0:
        options = {"compression": zipfile.ZIP_STORED}
    else:
        options = {"compression": zipfile.ZIP_DEFLATED, "compresslevel": compression_level}

    fd, archive_path = tempfile.mkstemp(prefix="artifact-quota-", suffix=".zip", dir=work_dir)
    try:
        with os.fdopen(fd, "wb") as stream:
            with zipfile.ZipFile(stream, "w", strict_timestamps=False, **options) as archive:
                for source, arcname in _iter_archive_entries(Path(path)):
                    archive.write(source, arcname)
        return os.path.getsize(archive_path)
    except (OSError, ValueError, zipfile.BadZipFile, zlib.error) as e:
        raise MeasurementError(f"Failed to archive '{path}': {e}") from e
    finally:
        try:
            os.unlink(archive_path)
        except FileNotFoundError:
            pass


async def estimate_pending_size(
    declared_size: Optional[int] = None,
    fixed_size: Optional[int] = None,
    paths: Iterable[str] = (),
    compression_level: int = 0,
) -> SizeEstimate:
    """Determine how many bytes the pending upload will occupy.

    Args:
        declared_size: Size stated by the caller, used as-is
        fixed_size: Reserved size override, used when nothing is declared
        paths: Local files or directories to measure otherwise
        compression_level: Zip compression level 0-9 for measurement

    Raises:
        ConfigurationError: On an invalid compression level
        MeasurementError: If archiving any existing path fails
    """
    level = validate_compression_level(compression_level)

    if declared_size is not None:
        return SizeEstimate(size=declared_size, mode=MODE_DECLARED)
    if fixed_size is not None:
        return SizeEstimate(size=fixed_size, mode=MODE_FIXED)

    estimate = SizeEstimate(size=0, mode=MODE_MEASURED)
    for path in paths:
        if not Path(path).exists():
            logger.warning("pending_path_missing", path=path)
            estimate.missing_paths.append(path)
            continue
        estimate.measured_paths.append(path)

    for path in estimate.measured_paths:
        size = await asyncio.to_thread(measure_archive_size, path, level)
        logger.debug("pending_path_measured", path=path, size=size, compression_level=level)
        estimate.size += size

    return estimate
