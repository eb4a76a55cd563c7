# backend/telecloud/storage_adapters/base.py

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Iterator, Optional, Tuple

# (start, end) -- end None ise dosya sonuna kadar ("bytes=100-")
ByteRange = Tuple[int, Optional[int]]


@dataclass
class StoredBlob:
    """Uzak depoya yüklenen içeriğin kimliği."""
    handle: str                  # opak, kalıcı referans (Telegram file_id)
    message_id: Optional[int]    # içeriği taşıyan mesaj (silme için)
    size: Optional[int] = None


class BlobStream:
    """
    Tembel, tek yönlü bayt akışı.
    'start'/'end' (dahil) sadece kısmi okumada doludur; close() uzak bağlantıyı bırakır.
    """

    def __init__(
        self,
        chunks: Iterable[bytes],
        total_size: int,
        start: Optional[int] = None,
        end: Optional[int] = None,
        on_close: Optional[Callable[[], None]] = None,
    ):
        self._chunks = chunks
        self.total_size = total_size
        self.start = start
        self.end = end
        self._on_close = on_close
        self.closed = False

    @property
    def is_partial(self) -> bool:
        return self.start is not None

    @property
    def content_length(self) -> int:
        if self.is_partial:
            return self.end - self.start + 1
        return self.total_size

    def __iter__(self) -> Iterator[bytes]:
        try:
            for chunk in self._chunks:
                if chunk:
                    yield chunk
        finally:
            self.close()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._on_close is not None:
            self._on_close()


class BaseBlobRelay(ABC):
    """
    Dosya içeriğini üçüncü parti bir mesajlaşma platformunda saklayan
    depolama yöntemleri için soyut temel sınıf (arayüz).
    """

    @abstractmethod
    def store(self, content: bytes, filename: str, mime_type: str) -> StoredBlob:
        """
        İçeriği tek bir uzak çağrı ile yükler ve handle döndürür.
        Hata durumunda RelayError fırlatır; kendi içinde tekrar denemez.
        """
        pass

    @abstractmethod
    def fetch_stream(self, handle: str, byte_range: Optional[ByteRange] = None) -> BlobStream:
        """
        Handle'a ait içeriği akış olarak döndürür.
        Aralık verilirse sadece o alt aralık üretilir; karşılanamayan aralık
        RangeNotSatisfiable, uzak hata RelayError fırlatır.
        """
        pass

    @abstractmethod
    def release(self, message_id: int) -> bool:
        """Uzak mesajı silmeyi dener (best-effort). Asla hata fırlatmaz."""
        pass

    @abstractmethod
    def health(self) -> Dict[str, bool]:
        pass
