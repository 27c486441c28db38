"""In-memory ZIP archive construction for project uploads."""

import io
import logging
import os
import zipfile
from collections.abc import Iterable
from pathlib import Path
from typing import Union

from ..exceptions import FileAccessError
from ..utils import normalize_path

logger = logging.getLogger(__name__)

COMPRESSION_LEVEL = 9


def _new_zip(buffer: io.BytesIO) -> zipfile.ZipFile:
    return zipfile.ZipFile(
        buffer,
        mode="w",
        compression=zipfile.ZIP_DEFLATED,
        compresslevel=COMPRESSION_LEVEL,
    )


def build_archive(
    project_root: Union[str, Path], relative_paths: Iterable[str]
) -> bytes:
    """Create a ZIP archive of project files.

    Each file is stored under its relative path verbatim, so extracting the
    archive reproduces the project layout.

    Args:
        project_root: Root directory of the project
        relative_paths: Paths relative to the project root

    Returns:
        The ZIP archive as bytes

    Raises:
        FileAccessError: If any path cannot be read (no partial archive is
            returned)
    """
    root = Path(project_root)
    buffer = io.BytesIO()
    count = 0

    with _new_zip(buffer) as archive:
        for relative_path in relative_paths:
            entry_name = normalize_path(relative_path)
            absolute_path = root / relative_path
            try:
                data = absolute_path.read_bytes()
                info = _zip_info(entry_name, absolute_path)
            except OSError as e:
                raise FileAccessError(
                    f'Failed to access path "{relative_path}": {e}', relative_path
                ) from e
            archive.writestr(info, data, compresslevel=COMPRESSION_LEVEL)
            count += 1

    logger.debug(f"Archived {count} file(s) ({buffer.tell()} bytes)")
    return buffer.getvalue()


def _zip_info(entry_name: str, source: Path) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo.from_file(
        source, arcname=entry_name, strict_timestamps=False
    )
    info.compress_type = zipfile.ZIP_DEFLATED
    return info


def archive_paths(paths: Iterable[Union[str, Path]]) -> bytes:
    """Create a ZIP archive from a list of files and directories.

    A file is stored under its base name. A directory is added recursively
    under its own base name as the top-level folder. Files that vanish
    while a directory is being walked are logged and skipped.

    This is a public helper for archiving arbitrary paths. The sync engine
    does not call it: project uploads use :func:`build_archive` over the
    manifest's file list, so the archive holds exactly the hashed files.

    Args:
        paths: Files or directories to archive

    Returns:
        The ZIP archive as bytes

    Raises:
        ValueError: If no paths are given
        FileAccessError: If a path cannot be accessed
    """
    path_list = [Path(p) for p in paths]
    if not path_list:
        raise ValueError("No paths provided for archiving")
    if any(not str(p) for p in path_list):
        raise ValueError("Invalid path provided: all paths must be non-empty")

    buffer = io.BytesIO()
    with _new_zip(buffer) as archive:
        for path in path_list:
            try:
                is_dir = path.is_dir()
                if not is_dir:
                    path.stat()
            except OSError as e:
                raise FileAccessError(
                    f'Failed to access path "{path}": {e}', str(path)
                ) from e

            if is_dir:
                _add_directory(archive, path)
            else:
                _add_file(archive, path, path.name)

    return buffer.getvalue()


def _add_file(archive: zipfile.ZipFile, path: Path, entry_name: str) -> None:
    try:
        data = path.read_bytes()
        info = _zip_info(entry_name, path)
    except OSError as e:
        raise FileAccessError(f'Failed to access path "{path}": {e}', str(path)) from e
    archive.writestr(info, data, compresslevel=COMPRESSION_LEVEL)


def _raise_walk_error(error: OSError) -> None:
    raise FileAccessError(
        f'Failed to access path "{error.filename}": {error}', error.filename
    ) from error


def _add_directory(archive: zipfile.ZipFile, directory: Path) -> None:
    base_name = Path(os.path.abspath(directory)).name
    for dirpath, dirnames, filenames in os.walk(directory, onerror=_raise_walk_error):
        dirnames.sort()
        for filename in sorted(filenames):
            file_path = Path(dirpath) / filename
            relative = file_path.relative_to(directory).as_posix()
            try:
                data = file_path.read_bytes()
                info = _zip_info(f"{base_name}/{relative}", file_path)
            except FileNotFoundError:
                logger.warning(f"File disappeared while archiving: {file_path}")
                continue
            except OSError as e:
                raise FileAccessError(
                    f'Failed to access path "{file_path}": {e}', str(file_path)
                ) from e
            archive.writestr(info, data, compresslevel=COMPRESSION_LEVEL)


def list_archive_entries(archive_bytes: bytes) -> list[str]:
    """Return the entry names stored in an archive."""
    with zipfile.ZipFile(io.BytesIO(archive_bytes)) as archive:
        return archive.namelist()
