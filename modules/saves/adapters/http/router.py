from collections.abc import Iterator
from email.utils import format_datetime

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, Response, UploadFile
from fastapi.responses import StreamingResponse

from modules.saves.adapters.schemas import (
    SaveErrorResponseV1,
    SaveListResponseV1,
    SaveRecordV1,
    SaveUploadResponseV1,
)
from modules.saves.application.errors import ErrorKind, SaveValidationError
from modules.saves.application.facade import SaveStore, StoreResult
from modules.saves.application.ports import LatestSave
from modules.saves.domain.validation import ValidationRule

router = APIRouter(prefix="/v1/games", tags=["saves"])

_CHUNK_SIZE = 64 * 1024


def get_save_store(request: Request) -> SaveStore:
    store = getattr(request.app.state, "save_store", None)
    if store is None:
        raise RuntimeError("save store is not configured")
    return store


def _raise_for_error(result: StoreResult) -> None:
    error = result.error
    if error is None:
        return
    if isinstance(error, SaveValidationError):
        status_code = 413 if error.rule is ValidationRule.size else 400
        body = SaveErrorResponseV1(
            kind=error.kind.value, detail=error.message, rule=error.rule.value
        )
        raise HTTPException(status_code=status_code, detail=body.model_dump())
    if error.kind is ErrorKind.not_found:
        body = SaveErrorResponseV1(kind=error.kind.value, detail=error.message)
        raise HTTPException(status_code=404, detail=body.model_dump())
    body = SaveErrorResponseV1(kind=ErrorKind.io.value, detail="save storage unavailable")
    raise HTTPException(status_code=500, detail=body.model_dump())


def _iter_chunks(latest: LatestSave) -> Iterator[bytes]:
    with latest:
        while True:
            chunk = latest.stream.read(_CHUNK_SIZE)
            if not chunk:
                break
            yield chunk


def _download_headers(game_id: str, latest: LatestSave) -> dict[str, str]:
    record = latest.record
    download_name = f"{game_id}_latest{record.extension.value}".replace('"', "")
    return {
        "Content-Disposition": f'attachment; filename="{download_name}"',
        "Content-Length": str(record.size),
        "Last-Modified": format_datetime(record.accepted_at, usegmt=True),
        "ETag": f'"{record.timestamp_ms:x}-{record.sequence:x}-{record.size:x}"',
        "X-Save-File-Name": record.file_name,
    }


@router.post("/{game_id}/saves", status_code=201, response_model=SaveUploadResponseV1)
def upload_save(
    game_id: str,
    file: UploadFile = File(...),  # noqa: B008
    store: SaveStore = Depends(get_save_store),  # noqa: B008
) -> SaveUploadResponseV1:
    # One byte past the ceiling is enough for the size rule to reject the upload.
    payload = file.file.read(store.max_bytes + 1)
    result = store.save(game_id, payload, file.filename or "")
    _raise_for_error(result)
    return SaveUploadResponseV1(save=SaveRecordV1.from_record(result.unwrap()))


@router.get("/{game_id}/saves", response_model=SaveListResponseV1)
def list_saves(
    game_id: str,
    limit: int | None = Query(default=None, ge=1, le=500),
    store: SaveStore = Depends(get_save_store),  # noqa: B008
) -> SaveListResponseV1:
    result = store.list_saves(game_id)
    _raise_for_error(result)
    records = result.unwrap()
    if limit is not None:
        records = records[:limit]
    return SaveListResponseV1(
        game_id=game_id,
        items=[SaveRecordV1.from_record(record) for record in records],
    )


@router.get("/{game_id}/saves/latest")
def download_latest_save(
    game_id: str,
    store: SaveStore = Depends(get_save_store),  # noqa: B008
) -> StreamingResponse:
    result = store.get_latest(game_id)
    _raise_for_error(result)
    latest = result.unwrap()
    return StreamingResponse(
        _iter_chunks(latest),
        media_type="application/zip" if latest.record.is_archive else "application/octet-stream",
        headers=_download_headers(game_id, latest),
    )


@router.delete("/{game_id}/saves/{file_name}", status_code=204)
def delete_save(
    game_id: str,
    file_name: str,
    store: SaveStore = Depends(get_save_store),  # noqa: B008
) -> Response:
    result = store.delete(game_id, file_name)
    _raise_for_error(result)
    return Response(status_code=204)


@router.delete("/{game_id}/saves")
def purge_saves(
    game_id: str,
    store: SaveStore = Depends(get_save_store),  # noqa: B008
) -> dict:
    result = store.purge(game_id)
    _raise_for_error(result)
    return {"game_id": game_id, "removed": result.unwrap()}
