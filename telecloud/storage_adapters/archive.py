# backend/telecloud/storage_adapters/archive.py
# Birden çok blob'u tek bir ZIP akışı olarak paketler.
# Girdiler sırayla çekilir, her girdi tamamlandıkça istemciye gönderilir.

import logging
import zipfile
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Optional

from telecloud.core.config import MAX_ARCHIVE_ENTRIES
from telecloud.core.exceptions import InvalidArgument
from telecloud.core.file_rules import split_extension
from telecloud.storage_adapters.base import BaseBlobRelay

logger = logging.getLogger(__name__)


@dataclass
class ArchiveEntry:
    handle: str
    display_name: str
    ref: Optional[str] = None  # hata dosyasında gösterilecek kimlik (file id)


class _StreamBuffer:
    """
    ZipFile'ın yazdığı baytları toplayan, seek desteklemeyen tampon.
    ZipFile seek edemediğinde data descriptor moduna geçer, böylece çıktı akıtılabilir.
    """

    def __init__(self):
        self._chunks: List[bytes] = []

    def write(self, data) -> int:
        self._chunks.append(bytes(data))
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass

    def drain(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks.clear()
        return data


def unique_entry_names(names: List[str]) -> List[str]:
    """Aynı arşivde tekrar eden isimlere ' (1)', ' (2)' ekler."""
    seen = {}
    result = []
    for name in names:
        candidate = name
        stem, ext = split_extension(name)
        counter = seen.get(name.lower(), 0)
        while candidate.lower() in seen:
            counter += 1
            candidate = f"{stem} ({counter}){ext}"
        seen[name.lower()] = counter
        seen[candidate.lower()] = 0
        result.append(candidate)
    return result


def _error_entry(entry: ArchiveEntry, index: int, error: Exception) -> tuple[str, bytes]:
    ref = entry.ref or str(index + 1)
    message = getattr(error, "message", None) or str(error) or type(error).__name__
    text = f'"{entry.display_name}" dosyası arşive eklenemedi (id: {ref}).\nHata: {message}\n'
    return f"error-{ref}.txt", text.encode("utf-8")


def build_archive(
    relay: BaseBlobRelay,
    entries: List[ArchiveEntry],
    max_entries: int = MAX_ARCHIVE_ENTRIES,
) -> Iterator[bytes]:
    """
    ZIP akışını üreten bir iterator döndürür.
    Limit kontrolü hemen (hiçbir şey çekilmeden) yapılır; tek bir girdinin
    hatası arşivi bozmaz, yerine açıklayıcı bir metin dosyası eklenir.
    """
    if not entries:
        raise InvalidArgument("Arşive eklenecek dosya yok.")
    if len(entries) > max_entries:
        raise InvalidArgument(f"Tek seferde en fazla {max_entries} dosya indirilebilir.")
    return _generate(relay, entries)


def _read_entry(relay: BaseBlobRelay, entry: ArchiveEntry) -> bytes:
    """Girdiyi tamamen okur; akış yarıda kesilirse hata girdinin kendisine aittir."""
    stream = relay.fetch_stream(entry.handle)
    try:
        return b"".join(stream)
    finally:
        stream.close()


def _generate(relay: BaseBlobRelay, entries: List[ArchiveEntry]) -> Iterator[bytes]:
    buffer = _StreamBuffer()
    names = unique_entry_names([e.display_name for e in entries])
    failures = 0

    with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
        for index, entry in enumerate(entries):
            # Bellekte en fazla bir dosya tutulur; yarım kalan dosya arşive hiç yazılmaz
            try:
                content = _read_entry(relay, entry)
            except Exception as e:
                failures += 1
                logger.warning("Arşiv girdisi alınamadı (%s): %s", entry.ref or entry.display_name, e)
                error_name, error_body = _error_entry(entry, index, e)
                archive.writestr(error_name, error_body)
            else:
                info = zipfile.ZipInfo(names[index], date_time=datetime.now().timetuple()[:6])
                info.compress_type = zipfile.ZIP_DEFLATED
                archive.writestr(info, content)
                del content
            pending = buffer.drain()
            if pending:
                yield pending

    logger.info("Arşiv tamamlandı: %d girdi, %d hata", len(entries), failures)
    yield buffer.drain()
