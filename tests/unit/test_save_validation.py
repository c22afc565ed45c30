import io
import zipfile

import pytest

from modules.saves.domain.validation import (
    MAX_SAVE_BYTES,
    ValidationRule,
    check_archive,
    check_extension,
    check_file_name,
    check_game_id,
    check_size,
    display_name,
    validate_upload,
)


def _zip_bytes(entries: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.mark.parametrize("game_id", ["g1", "test-game-123", "0b6f2c1e-7a3d-4e0f-9f00-1c2d3e4f5a6b"])
def test_check_game_id_accepts_plain_identifiers(game_id: str) -> None:
    assert check_game_id(game_id) is None


@pytest.mark.parametrize(
    "game_id",
    ["", "   ", " g1", "g1 ", "../invalid", "game/with/slashes", "game\\win", "a..b", "."],
)
def test_check_game_id_rejects_empty_or_traversal(game_id: str) -> None:
    rejection = check_game_id(game_id)
    assert rejection is not None
    assert rejection.rule is ValidationRule.game_id


@pytest.mark.parametrize("game_id", ["a\x00b", "line\nbreak", "bell\x07", "del\x7f"])
def test_check_game_id_rejects_control_characters(game_id: str) -> None:
    rejection = check_game_id(game_id)
    assert rejection is not None
    assert rejection.reason == "Game ID contains invalid characters"


def test_check_game_id_caps_length() -> None:
    assert check_game_id("g" * 128) is None
    rejection = check_game_id("g" * 129)
    assert rejection is not None
    assert rejection.reason == "Game ID must be at most 128 characters"


def test_check_extension_is_case_insensitive() -> None:
    assert check_extension("Turn-12.SAV") is None
    assert check_extension("bundle.Zip") is None


def test_check_extension_rejects_exe_and_lists_allowed() -> None:
    rejection = check_extension("save.exe")
    assert rejection is not None
    assert rejection.rule is ValidationRule.extension
    assert ".sav" in rejection.reason
    assert ".zip" in rejection.reason


def test_check_extension_rejects_missing_suffix() -> None:
    assert check_extension("savefile") is not None
    assert check_extension("") is not None


def test_check_size_boundary() -> None:
    assert check_size(b"x" * 16, max_bytes=16) is None
    rejection = check_size(b"x" * 17, max_bytes=16)
    assert rejection is not None
    assert rejection.rule is ValidationRule.size


def test_check_size_default_ceiling_message() -> None:
    rejection = check_size(b"\0" * (MAX_SAVE_BYTES + 1))
    assert rejection is not None
    assert "10MB" in rejection.reason


def test_check_archive_accepts_nested_relative_entries() -> None:
    payload = _zip_bytes({"world/region.dat": b"r", "meta.json": b"{}"})
    assert check_archive(payload) is None


def test_check_archive_rejects_parent_traversal() -> None:
    rejection = check_archive(_zip_bytes({"../../../evil.txt": b"Evil content"}))
    assert rejection is not None
    assert rejection.rule is ValidationRule.archive
    assert "dangerous" in rejection.reason


@pytest.mark.parametrize("name", ["/etc/passwd", "..\\..\\evil.txt", "C:/Windows/evil.dll"])
def test_check_archive_rejects_absolute_and_windows_paths(name: str) -> None:
    rejection = check_archive(_zip_bytes({"ok.txt": b"fine", name: b"bad"}))
    assert rejection is not None
    assert rejection.rule is ValidationRule.archive


def test_check_archive_rejects_empty_archive() -> None:
    rejection = check_archive(_zip_bytes({}))
    assert rejection is not None
    assert rejection.reason == "ZIP file is empty"


def test_check_archive_rejects_garbage_as_validation_failure() -> None:
    rejection = check_archive(b"definitely not a zip")
    assert rejection is not None
    assert rejection.rule is ValidationRule.archive
    assert rejection.reason == "Invalid ZIP file format"


def test_validate_upload_checks_rules_in_order() -> None:
    rejection = validate_upload("../bad", "save.exe", b"x" * 32, max_bytes=8)
    assert rejection is not None
    assert rejection.rule is ValidationRule.game_id

    rejection = validate_upload("g1", "save.exe", b"x" * 32, max_bytes=8)
    assert rejection is not None
    assert rejection.rule is ValidationRule.extension


def test_validate_upload_size_applies_to_archives_before_decoding() -> None:
    payload = _zip_bytes({"data.bin": b"y" * 256})
    rejection = validate_upload("g1", "turn.zip", payload, max_bytes=64)
    assert rejection is not None
    assert rejection.rule is ValidationRule.size


def test_validate_upload_only_inspects_zip_payloads() -> None:
    assert validate_upload("g1", "turn.sav", b"not a zip but a raw save") is None
    assert validate_upload("g1", "turn.zip", b"not a zip") is not None


@pytest.mark.parametrize(
    "file_name",
    [
        "",
        "../0000000000010-0000.sav",
        "a/b.sav",
        ".upload-x.tmp",
        "0000000000010-0000\x00.sav",
        "x" * 300 + ".sav",
    ],
)
def test_check_file_name_rejects_unsafe_names(file_name: str) -> None:
    rejection = check_file_name(file_name)
    assert rejection is not None
    assert rejection.rule is ValidationRule.file_name


def test_display_name_strips_client_directories() -> None:
    assert display_name("C:\\Users\\me\\turn.sav") == "turn.sav"
    assert display_name("nested/dir/turn.zip") == "turn.zip"
    assert display_name("plain.sav") == "plain.sav"
