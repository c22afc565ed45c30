from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath

from modules.saves.adapters.schemas import SaveExtension
from modules.saves.domain.archive import decode_archive, unsafe_members

MAX_SAVE_BYTES = 10 * 1024 * 1024
ALLOWED_EXTENSIONS = tuple(extension.value for extension in SaveExtension)

_FORBIDDEN_ID_SEQUENCES = ("..", "/", "\\")
MAX_GAME_ID_LENGTH = 128
MAX_FILE_NAME_LENGTH = 255


class ValidationRule(str, Enum):
    game_id = "game_id"
    file_name = "file_name"
    extension = "extension"
    size = "size"
    archive = "archive"


@dataclass(frozen=True)
class Rejection:
    rule: ValidationRule
    reason: str


def display_name(original_name: str) -> str:
    """Drop any directory part a client may have sent along with the file name."""
    return PurePosixPath(original_name.replace("\\", "/")).name.strip()


def extension_of(original_name: str) -> SaveExtension | None:
    suffix = PurePosixPath(display_name(original_name)).suffix.lower()
    try:
        return SaveExtension(suffix)
    except ValueError:
        return None


def _has_unsafe_characters(value: str) -> bool:
    # Control characters (NUL included) cannot appear in a path component.
    if any(ord(char) < 32 or ord(char) == 127 for char in value):
        return True
    return any(sequence in value for sequence in _FORBIDDEN_ID_SEQUENCES)


def check_game_id(game_id: str) -> Rejection | None:
    if not isinstance(game_id, str) or not game_id.strip():
        return Rejection(
            ValidationRule.game_id, "Game ID is required and must be a non-empty string"
        )
    if game_id != game_id.strip():
        return Rejection(ValidationRule.game_id, "Game ID must not have surrounding whitespace")
    if len(game_id) > MAX_GAME_ID_LENGTH:
        return Rejection(
            ValidationRule.game_id,
            f"Game ID must be at most {MAX_GAME_ID_LENGTH} characters",
        )
    if game_id == "." or _has_unsafe_characters(game_id):
        return Rejection(ValidationRule.game_id, "Game ID contains invalid characters")
    return None


def check_file_name(file_name: str) -> Rejection | None:
    if not isinstance(file_name, str) or not file_name.strip():
        return Rejection(ValidationRule.file_name, "Save file name is required")
    if len(file_name) > MAX_FILE_NAME_LENGTH:
        return Rejection(
            ValidationRule.file_name,
            f"Save file name must be at most {MAX_FILE_NAME_LENGTH} characters",
        )
    if _has_unsafe_characters(file_name):
        return Rejection(ValidationRule.file_name, "Save file name contains invalid characters")
    if file_name.startswith("."):
        return Rejection(ValidationRule.file_name, "Save file name must not be hidden")
    return None


def check_extension(original_name: str) -> Rejection | None:
    if extension_of(original_name) is None:
        return Rejection(
            ValidationRule.extension,
            f"Invalid file extension. Allowed extensions: {', '.join(ALLOWED_EXTENSIONS)}",
        )
    return None


def check_size(payload: bytes, max_bytes: int = MAX_SAVE_BYTES) -> Rejection | None:
    if len(payload) > max_bytes:
        return Rejection(
            ValidationRule.size,
            f"File size exceeds maximum limit of {max_bytes / (1024 * 1024):g}MB",
        )
    return None


def check_archive(payload: bytes) -> Rejection | None:
    members = decode_archive(payload)
    if members is None:
        return Rejection(ValidationRule.archive, "Invalid ZIP file format")
    if not members:
        return Rejection(ValidationRule.archive, "ZIP file is empty")
    unsafe = unsafe_members(members)
    if unsafe:
        names = ", ".join(repr(entry.name) for entry in unsafe[:3])
        return Rejection(
            ValidationRule.archive,
            f"ZIP file contains potentially dangerous paths: {names}",
        )
    return None


def validate_upload(
    game_id: str,
    original_name: str,
    payload: bytes,
    max_bytes: int = MAX_SAVE_BYTES,
) -> Rejection | None:
    """Run the upload rules in order and return the first rejection, if any."""
    rejection = (
        check_game_id(game_id)
        or check_extension(original_name)
        or check_size(payload, max_bytes)
    )
    if rejection is not None:
        return rejection
    if extension_of(original_name) is SaveExtension.zip:
        return check_archive(payload)
    return None
