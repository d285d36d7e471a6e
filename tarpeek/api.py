"""
Public entry points for listing and reading archive entries.

Both operations come in a blocking form and an asyncio form. Each call
builds its own `ArchiveScan`, so concurrent calls share nothing.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any, List, Mapping, Optional, Tuple

from .common.config import TarpeekSettings, resolve_options
from .common.errors import InvalidArgumentError, MissingArgumentError
from .core.controller import ArchiveScan
from .core.selection import EntryLister, EntrySeeker


def _require_path(value: Any, what: str) -> str:
    """Validate a path argument before any I/O happens."""
    if value is None or value == "":
        raise MissingArgumentError(f"Must give path to {what}")
    if isinstance(value, os.PathLike):
        value = os.fspath(value)
    if not isinstance(value, str):
        raise InvalidArgumentError(f"Path to {what} must be a string")
    if not value:
        raise MissingArgumentError(f"Must give path to {what}")
    return value


def _list_scan(archive_path: Any, options: Optional[Mapping[str, Any]],
               overrides: Mapping[str, Any]) -> Tuple[ArchiveScan, EntryLister]:
    archive_path = _require_path(archive_path, "tarball")
    resolved = resolve_options(options, **overrides)
    return ArchiveScan(archive_path, resolved), EntryLister(resolved)


def _read_scan(archive_path: Any, entry_path: Any, options: Optional[Mapping[str, Any]],
               overrides: Mapping[str, Any]) -> Tuple[ArchiveScan, EntrySeeker]:
    archive_path = _require_path(archive_path, "tarball")
    entry_path = _require_path(entry_path, "file to seek")
    resolved = resolve_options(options, **overrides).with_pattern(entry_path)
    settings = TarpeekSettings.from_env()
    scan = ArchiveScan(archive_path, resolved, settings)
    return scan, EntrySeeker(resolved, chunk_size=settings.chunk_size)


def list_entries(archive_path: str, options: Optional[Mapping[str, Any]] = None,
                 **kwargs: Any) -> List[str]:
    """
    List the entry paths of a tar archive selected by the options.

    Args:
        archive_path: Path to the (optionally compressed) tar archive
        options: Option mapping; keyword arguments are merged over it

    Returns:
        Entry paths in archive order; directories end with ``/``. An empty
        list means nothing was selected.
    """
    scan, engine = _list_scan(archive_path, options, kwargs)
    return scan.run(engine)


def read_entry(archive_path: str, entry_path: str, options: Optional[Mapping[str, Any]] = None,
               **kwargs: Any) -> bytes:
    """
    Read the contents of one file entry of a tar archive.

    Args:
        archive_path: Path to the (optionally compressed) tar archive
        entry_path: Entry path, or a pattern when ``wildcards`` is set
        options: Option mapping; keyword arguments are merged over it

    Returns:
        The entry contents.
    """
    scan, engine = _read_scan(archive_path, entry_path, options, kwargs)
    return scan.run(engine)


async def _run_in_thread(scan: ArchiveScan, engine) -> Any:
    task = asyncio.ensure_future(asyncio.to_thread(scan.run, engine))
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        scan.cancel()
        # Let the scan thread reach its release path before propagating.
        await asyncio.wait({task})
        if not task.cancelled():
            task.exception()
        raise


async def list_entries_async(archive_path: str, options: Optional[Mapping[str, Any]] = None,
                             **kwargs: Any) -> List[str]:
    """Asyncio counterpart of `list_entries`."""
    scan, engine = _list_scan(archive_path, options, kwargs)
    return await _run_in_thread(scan, engine)


async def read_entry_async(archive_path: str, entry_path: str,
                           options: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> bytes:
    """Asyncio counterpart of `read_entry`."""
    scan, engine = _read_scan(archive_path, entry_path, options, kwargs)
    return await _run_in_thread(scan, engine)
