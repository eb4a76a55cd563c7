# backend/telecloud/api/v1/files.py

import os
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Header, Query, Request, UploadFile
from fastapi.responses import StreamingResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.background import BackgroundTask

from telecloud.core.config import MAX_FILE_SIZE, RATE_LIMIT_ENABLED
from telecloud.dependencies import get_blob_relay, get_current_owner, get_db_repository
from telecloud.repositories.base import BaseRepository
from telecloud.schemas.common import parse_location_param
from telecloud.schemas.file import (
    BulkDownloadRequest,
    DuplicateGroup,
    FileListResponse,
    FileOut,
    FileUpdate,
    StorageUsage,
)
from telecloud.schemas.owner import OwnerInDB
from telecloud.services import file_service
from telecloud.storage_adapters.base import BaseBlobRelay

limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)

router = APIRouter()


def _build_content_disposition(filename: str, disposition: str = "inline") -> str:
    """RFC 5987 uyumlu Content-Disposition header üretir."""
    base_name, ext = os.path.splitext(filename)
    ascii_base = base_name.encode("ascii", "ignore").decode() or "file"
    ascii_ext = ext.encode("ascii", "ignore").decode()
    ascii_name = f"{ascii_base}{ascii_ext}".replace('"', '')
    encoded_original = quote(filename)
    return f"{disposition}; filename=\"{ascii_name}\"; filename*=UTF-8''{encoded_original}"


@router.post("/upload", response_model=FileOut, status_code=201)
@limiter.limit("20/minute")  # Rate limiting: 20 dosya/dakika
def upload_file(
    request: Request,
    folder_id: Optional[str] = Form(None),
    file: UploadFile = File(...),
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository),
    relay: BaseBlobRelay = Depends(get_blob_relay)
):
    # Limitin bir byte fazlasını oku: aşım varsa servis PayloadTooLarge döner
    content = file.file.read(MAX_FILE_SIZE + 1)
    return file_service.upload_new_file(
        owner=current_owner,
        folder_id=folder_id or None,
        filename=file.filename,
        mime_type=file.content_type,
        content=content,
        db=db,
        relay=relay,
    )


@router.get("/", response_model=FileListResponse)
def list_files(
    folder_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1),
    include_deleted: bool = Query(False),
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository)
):
    """
    Dosyaları en yeniden eskiye sayfalı listeler.

    - **folder_id** gönderilmezse tüm dosyalar, **null** ise kök dizin, id ise o klasör.
    - **limit** en fazla 100'dür.
    """
    return file_service.get_files_by_owner(
        current_owner,
        db,
        folder_id=parse_location_param(folder_id),
        search=search,
        page=page,
        limit=limit,
        include_deleted=include_deleted,
    )


@router.get("/usage", response_model=StorageUsage)
def get_storage_usage(
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository)
):
    return file_service.get_storage_usage(current_owner, db)


@router.post("/usage/resync", response_model=StorageUsage)
def resync_storage_usage(
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository)
):
    """Profildeki kullanım sayaçlarını dosya kayıtlarından yeniden hesaplar."""
    return file_service.resync_owner_usage(current_owner.id, db)


@router.get("/duplicates", response_model=List[DuplicateGroup])
def list_duplicates(
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository)
):
    return file_service.find_duplicates(current_owner, db)


@router.post("/bulk-download")
@limiter.limit("10/minute")
def bulk_download(
    request: Request,
    body: BulkDownloadRequest,
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository),
    relay: BaseBlobRelay = Depends(get_blob_relay)
):
    """Seçilen dosyaları (en fazla 200) tek bir ZIP olarak akıtır."""
    archive = file_service.build_bulk_download(current_owner, body.file_ids, db, relay)
    filename = f"files-{datetime.now(timezone.utc).strftime('%Y-%m-%d')}.zip"
    return StreamingResponse(
        archive,
        media_type="application/zip",
        headers={"Content-Disposition": _build_content_disposition(filename, disposition="attachment")},
    )


@router.patch("/{file_id}", response_model=FileOut)
def update_file(
    file_id: str,
    update: FileUpdate,
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository)
):
    """Dosyayı yeniden adlandırır ve/veya taşır (folder_id: null -> kök dizin)."""
    return file_service.update_file(current_owner, file_id, update, db)


@router.delete("/{file_id}", response_model=FileOut)
def delete_file(
    file_id: str,
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository)
):
    """Dosyayı çöpe taşır (soft delete)."""
    return file_service.soft_delete_file(current_owner, file_id, db)


@router.post("/{file_id}/restore", response_model=FileOut)
def restore_file(
    file_id: str,
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository)
):
    return file_service.restore_file(current_owner, file_id, db)


@router.get("/{file_id}/download")
def download_file_content(
    file_id: str,
    inline: bool = Query(False),
    range_header: Optional[str] = Header(None, alias="Range"),
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository),
    relay: BaseBlobRelay = Depends(get_blob_relay)
):
    """
    Dosyayı Telegram'dan stream ederek indirir.
    'Range: bytes=START-[END]' başlığı gönderilirse 206 ile kısmi içerik döner.
    """
    record, stream = file_service.open_download(current_owner, file_id, range_header, db, relay)

    headers = {
        "Accept-Ranges": "bytes",
        "Content-Length": str(stream.content_length),
        "ETag": f'"{record.id}-{int(record.created_at.timestamp())}"',
        "Content-Disposition": _build_content_disposition(
            record.name, disposition="inline" if inline else "attachment"
        ),
    }
    status_code = 200
    if stream.is_partial:
        status_code = 206
        headers["Content-Range"] = f"bytes {stream.start}-{stream.end}/{stream.total_size}"

    return StreamingResponse(
        stream,
        status_code=status_code,
        media_type=record.mime_type,
        headers=headers,
        background=BackgroundTask(stream.close),
    )
