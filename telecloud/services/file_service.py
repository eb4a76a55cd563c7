# backend/telecloud/services/file_service.py

import logging
import re
import time
from collections import defaultdict
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Tuple

from telecloud.core.config import (
    DEFAULT_PAGE_SIZE,
    MAX_ARCHIVE_ENTRIES,
    MAX_FILE_SIZE,
    MAX_PAGE_SIZE,
    RELEASE_BLOBS_ON_PURGE,
)
from telecloud.core.exceptions import (
    Conflict,
    InvalidArgument,
    NotFound,
    PayloadTooLarge,
    UnsupportedMediaType,
)
from telecloud.core.file_rules import (
    format_file_size,
    is_allowed_file_type,
    normalize_mime_type,
    sanitize_file_name,
    split_extension,
)
from telecloud.repositories.base import BaseRepository, LocationFilter
from telecloud.schemas.common import UNSET, Pagination
from telecloud.schemas.file import (
    DuplicateGroup,
    FileCreate,
    FileListResponse,
    FileOut,
    FileUpdate,
    StorageUsage,
)
from telecloud.schemas.owner import OwnerInDB
from telecloud.services import folder_service
from telecloud.storage_adapters.archive import ArchiveEntry, build_archive
from telecloud.storage_adapters.base import BaseBlobRelay, BlobStream, ByteRange

logger = logging.getLogger(__name__)

RANGE_HEADER_PATTERN = re.compile(r"^bytes=(\d+)-(\d*)$")
# Yarışta kaybeden kaydın yeni isimle kaç kez deneneceği
INSERT_ATTEMPTS = 3


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _unix_millis() -> int:
    return int(time.time() * 1000)


def get_owned_file(owner_id: str, file_id: str, db: BaseRepository) -> FileOut:
    """Dosya yoksa veya başkasına aitse aynı NotFound hatası döner."""
    record = db.get_file(file_id)
    if record is None or record.owner_id != owner_id:
        raise NotFound("Dosya bulunamadı veya erişim yetkiniz yok.")
    return record


def get_live_file(owner_id: str, file_id: str, db: BaseRepository) -> FileOut:
    """Çöpteki dosya indirilemez ve düzenlenemez; yokmuş gibi davranılır."""
    record = get_owned_file(owner_id, file_id, db)
    if record.deleted_at is not None:
        raise NotFound("Dosya bulunamadı veya erişim yetkiniz yok.")
    return record


def _ensure_folder(owner_id: str, folder_id: Optional[str], db: BaseRepository) -> None:
    if folder_id is not None:
        folder_service.get_owned_folder(owner_id, folder_id, db)


def validate_file_upload(filename: Optional[str], mime_type: Optional[str], size: int) -> Tuple[str, str]:
    """
    Dosya yüklemesini doğrular.
    Returns: (sanitized_filename, normalized_mime_type)
    """
    # 1. Dosya boyutu kontrolü
    if size <= 0:
        raise InvalidArgument("Boş dosya yüklenemez.")
    if size > MAX_FILE_SIZE:
        raise PayloadTooLarge(
            f"Dosya çok büyük. Maksimum boyut: {MAX_FILE_SIZE / (1024 * 1024):.0f}MB"
        )

    # 2. Dosya adı sanitizasyonu (reddetmez, yeniden yazar)
    sanitized_filename = sanitize_file_name(filename)

    # 3. MIME tipi ve uzantı kontrolü
    normalized_mime = normalize_mime_type(mime_type or "application/octet-stream")
    if not is_allowed_file_type(sanitized_filename, normalized_mime):
        raise UnsupportedMediaType(
            f"Bu dosya tipine izin verilmiyor: {split_extension(sanitized_filename)[1] or normalized_mime}"
        )
    return sanitized_filename, normalized_mime


def resolve_duplicate_name(owner_id: str, folder_id: Optional[str], name: str, db: BaseRepository) -> str:
    """
    Aynı konumda canlı bir eşi varsa uzantıdan önce '_{unix_millis}' ekler.
    Aynı milisaniyede gelen yüklemeler için '_{unix_millis}_{n}' denenir.
    """
    if not db.live_file_name_exists(owner_id, folder_id, name):
        return name
    stem, ext = split_extension(name)
    millis = _unix_millis()
    candidate = f"{stem}_{millis}{ext}"
    counter = 0
    while db.live_file_name_exists(owner_id, folder_id, candidate):
        counter += 1
        candidate = f"{stem}_{millis}_{counter}{ext}"
    return candidate


def upload_new_file(
    owner: OwnerInDB,
    folder_id: Optional[str],
    filename: Optional[str],
    mime_type: Optional[str],
    content: bytes,
    db: BaseRepository,
    relay: BaseBlobRelay,
) -> FileOut:
    """
    Dosya yükleme iş akışını yönetir:
    1. Hedef klasörün sahipliğini kontrol et.
    2. Boyut, isim ve tip doğrulaması.
    3. Mükerrer isim varsa zaman damgalı yeni isim üret.
    4. İçeriği Telegram'a yükle (hata -> kayıt oluşturulmaz).
    5. Dosya kaydını (metadata) veritabanına oluştur.
    """
    _ensure_folder(owner.id, folder_id, db)
    name, normalized_mime = validate_file_upload(filename, mime_type, len(content))
    name = resolve_duplicate_name(owner.id, folder_id, name, db)

    stored = relay.store(content, name, normalized_mime)

    file_data = FileCreate(
        name=name,
        folder_id=folder_id,
        mime_type=normalized_mime,
        size=len(content),
        owner_id=owner.id,
        blob_handle=stored.handle,
        blob_message_id=stored.message_id,
        created_at=utc_now(),
    )
    attempt = 1
    while True:
        try:
            new_file_record = db.create_file_record(file_data)
            break
        except Conflict:
            if attempt >= INSERT_ATTEMPTS:
                # Eşzamanlı yüklemeler ismi almaya devam etti: yüklenen blob sahipsiz kalmasın
                logger.warning("Dosya kaydı çakıştı, yüklenen blob geri alınıyor: %s", file_data.name)
                if stored.message_id is not None:
                    relay.release(stored.message_id)
                raise
            # Blob zaten yüklendi, sadece isim yeniden çözülür
            attempt += 1
            file_data.name = resolve_duplicate_name(owner.id, folder_id, name, db)

    logger.info("Dosya yüklendi: %s (%s, owner: %s)", new_file_record.id, format_file_size(new_file_record.size), owner.id)
    return new_file_record


def soft_delete_file(owner: OwnerInDB, file_id: str, db: BaseRepository) -> FileOut:
    """Dosyayı çöpe taşır; zaten silinmişse bir şey yapmaz."""
    record = get_owned_file(owner.id, file_id, db)
    if record.deleted_at is not None:
        return record
    return db.set_file_deleted_at(file_id, utc_now())


def restore_file(owner: OwnerInDB, file_id: str, db: BaseRepository) -> FileOut:
    record = get_owned_file(owner.id, file_id, db)
    if record.deleted_at is None:
        raise InvalidArgument("Dosya zaten silinmemiş.")
    # Aynı isimde canlı dosya varsa repository Conflict fırlatır
    return db.set_file_deleted_at(file_id, None)


def update_file(owner: OwnerInDB, file_id: str, update: FileUpdate, db: BaseRepository) -> FileOut:
    """
    Yeniden adlandırma ve/veya taşıma.
    Yüklemeden farklı olarak çakışmada otomatik isim verilmez, Conflict döner.
    """
    record = get_live_file(owner.id, file_id, db)
    name = sanitize_file_name(update.name) if update.name is not None else record.name
    if update.name is not None and not is_allowed_file_type(name, record.mime_type):
        raise UnsupportedMediaType(f"Bu dosya tipine izin verilmiyor: {split_extension(name)[1]}")

    folder_id = record.folder_id
    if "folder_id" in update.model_fields_set:
        folder_id = update.folder_id
        _ensure_folder(owner.id, folder_id, db)

    return db.update_file(file_id, name=name, folder_id=folder_id)


def clamp_paging(page: int, limit: int) -> Tuple[int, int]:
    page = max(page or 1, 1)
    limit = min(max(limit or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE)
    return page, limit


def get_files_by_owner(
    owner: OwnerInDB,
    db: BaseRepository,
    folder_id: LocationFilter = UNSET,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    include_deleted: bool = False,
) -> FileListResponse:
    """
    Kullanıcının dosyalarını en yeniden eskiye listeler.
    folder_id: UNSET -> tüm dosyalar, None -> kök dizin, id -> o klasör.
    """
    page, limit = clamp_paging(page, limit)
    if folder_id is not UNSET:
        _ensure_folder(owner.id, folder_id, db)

    items, total = db.find_files(
        owner_id=owner.id,
        folder_id=folder_id,
        include_deleted=include_deleted,
        search=(search or "").strip() or None,
        sort_by="created_at",
        descending=True,
        offset=(page - 1) * limit,
        limit=limit,
    )
    return FileListResponse(items=items, pagination=Pagination.build(page, limit, total))


def get_storage_usage(owner: OwnerInDB, db: BaseRepository) -> StorageUsage:
    total_size, total_files = db.get_storage_usage(owner.id)
    return StorageUsage(total_size=total_size, total_files=total_files, formatted_size=format_file_size(total_size))


def resync_owner_usage(owner_id: str, db: BaseRepository) -> StorageUsage:
    """Owner üzerindeki önbellek sayaçlarını dosya deposundan yeniden hesaplar."""
    total_size, total_files = db.get_storage_usage(owner_id)
    db.update_owner_usage(owner_id, total_files=total_files, total_size=total_size)
    logger.info("Kullanım sayaçları güncellendi (owner: %s): %d dosya, %d byte", owner_id, total_files, total_size)
    return StorageUsage(total_size=total_size, total_files=total_files, formatted_size=format_file_size(total_size))


def find_duplicates(owner: OwnerInDB, db: BaseRepository) -> List[DuplicateGroup]:
    """Canlı dosyaları (isim, boyut) ikilisine göre gruplar; birden fazla üyesi olanları döndürür."""
    groups = defaultdict(list)
    for record in db.list_live_files(owner.id):
        groups[(record.name, record.size)].append(record)

    duplicates = [
        DuplicateGroup(name=name, size=size, files=sorted(files, key=lambda f: f.created_at))
        for (name, size), files in groups.items()
        if len(files) > 1
    ]
    return sorted(duplicates, key=lambda g: (g.name, g.size))


def parse_range_header(range_header: Optional[str]) -> Optional[ByteRange]:
    """'bytes=START-[END]' biçimini çözer; desteklenmeyen biçimlerde tam içerik döner."""
    if not range_header:
        return None
    match = RANGE_HEADER_PATTERN.match(range_header.strip())
    if not match:
        return None
    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else None
    return start, end


def open_download(
    owner: OwnerInDB,
    file_id: str,
    range_header: Optional[str],
    db: BaseRepository,
    relay: BaseBlobRelay,
) -> Tuple[FileOut, BlobStream]:
    """
    Sahiplik kontrolünden sonra içeriği Telegram'dan akış olarak açar.
    Uzak depo hatası RelayError (503) olarak yukarı çıkar.
    """
    record = get_live_file(owner.id, file_id, db)
    stream = relay.fetch_stream(record.blob_handle, parse_range_header(range_header))
    return record, stream


def build_bulk_download(
    owner: OwnerInDB,
    file_ids: List[str],
    db: BaseRepository,
    relay: BaseBlobRelay,
) -> Iterator[bytes]:
    """
    Seçilen canlı dosyaları istek sırasıyla ZIP akışına çevirir.
    Bulunamayan veya başkasına ait id'ler sessizce atlanır.
    """
    if len(file_ids) > MAX_ARCHIVE_ENTRIES:
        raise InvalidArgument(f"Tek seferde en fazla {MAX_ARCHIVE_ENTRIES} dosya indirilebilir.")

    records = db.get_files_by_ids(file_ids)
    entries = []
    seen = set()
    for file_id in file_ids:
        record = records.get(file_id)
        if file_id in seen or record is None or record.owner_id != owner.id or record.deleted_at is not None:
            continue
        seen.add(file_id)
        entries.append(ArchiveEntry(handle=record.blob_handle, display_name=record.name, ref=record.id))

    if not entries:
        raise NotFound("İndirilecek dosya bulunamadı.")
    return build_archive(relay, entries)


def purge_file(record: FileOut, db: BaseRepository, relay: Optional[BaseBlobRelay]) -> bool:
    """Kaydı kalıcı olarak siler ve (ayarlıysa) Telegram mesajını kaldırmayı dener."""
    deleted = db.delete_file_record(record.id)
    if deleted and relay is not None and RELEASE_BLOBS_ON_PURGE and record.blob_message_id is not None:
        relay.release(record.blob_message_id)
    return deleted
