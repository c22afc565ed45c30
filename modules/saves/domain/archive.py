from __future__ import annotations

import io
import re
import zipfile
from dataclasses import dataclass
from pathlib import PurePosixPath

ZIP_SIGNATURES = (b"PK\x03\x04", b"PK\x05\x06")

_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")


@dataclass(frozen=True)
class ArchiveEntry:
    name: str
    path: PurePosixPath
    size: int
    is_dir: bool


@dataclass(frozen=True)
class UnsafeEntry:
    name: str
    reason: str


ArchiveMember = ArchiveEntry | UnsafeEntry


def looks_like_zip(head: bytes) -> bool:
    return head[:4] in ZIP_SIGNATURES


def classify_entry(info: zipfile.ZipInfo) -> ArchiveMember:
    """Turn a raw zip member into a trusted entry or an explanation of why it is not."""
    name = info.filename
    normalized = name.replace("\\", "/")
    if not normalized.strip("/"):
        return UnsafeEntry(name=name, reason="empty entry name")
    if normalized.startswith("/"):
        return UnsafeEntry(name=name, reason="absolute path")
    if _DRIVE_PREFIX.match(normalized):
        return UnsafeEntry(name=name, reason="drive-qualified path")
    parts = [part for part in normalized.split("/") if part]
    if ".." in parts:
        return UnsafeEntry(name=name, reason="parent directory segment")
    return ArchiveEntry(
        name=name,
        path=PurePosixPath(*parts),
        size=info.file_size,
        is_dir=info.is_dir(),
    )


def decode_archive(payload: bytes) -> list[ArchiveMember] | None:
    """Read the central directory of a zip payload.

    Returns None when the payload is not a readable zip archive. Member data
    is never extracted; only names and declared sizes are inspected.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(payload)) as archive:
            infos = archive.infolist()
    except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError, OSError, ValueError):
        return None
    return [classify_entry(info) for info in infos]


def unsafe_members(members: list[ArchiveMember]) -> list[UnsafeEntry]:
    return [member for member in members if isinstance(member, UnsafeEntry)]
