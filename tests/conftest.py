# tests/conftest.py
import os

# Uygulama modülleri import edilmeden önce ayarlanmalı (config modül seviyesinde okunur)
os.environ["DEPLOYMENT_TYPE"] = "memory"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["TELEGRAM_BOT_TOKEN"] = "123456:TEST"
os.environ["TELEGRAM_CHAT_ID"] = "-1001"
os.environ["ENVIRONMENT"] = "test"

from typing import Dict, Optional

import pytest

from telecloud.core.exceptions import RelayError
from telecloud.repositories.memory_repo import InMemoryRepository
from telecloud.schemas.owner import OwnerCreate
from telecloud.storage_adapters.base import BaseBlobRelay, BlobStream, ByteRange, StoredBlob
from telecloud.storage_adapters.telegram_relay import resolve_range


class FakeRelay(BaseBlobRelay):
    """
    İçerikleri bellekte tutan blob deposu.
    'fail_store', 'fail_handles' ve 'break_handles' ile hata senaryoları kurulur.
    """

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.released = []
        self.fail_store = False
        self.fail_handles = set()
        self.break_handles = set()  # akış yarıda kesilir
        self._next_message_id = 1000

    def store(self, content: bytes, filename: str, mime_type: str) -> StoredBlob:
        if self.fail_store:
            raise RelayError("Telegram API hatası: Bad Gateway", upstream_status=502)
        self._next_message_id += 1
        handle = f"tg-file-{self._next_message_id}"
        self.blobs[handle] = bytes(content)
        return StoredBlob(handle=handle, message_id=self._next_message_id, size=len(content))

    def fetch_stream(self, handle: str, byte_range: Optional[ByteRange] = None) -> BlobStream:
        if handle in self.fail_handles or handle not in self.blobs:
            raise RelayError("Telegram API hatası: file not found", upstream_status=400)
        data = self.blobs[handle]
        resolved = resolve_range(byte_range, len(data))

        if handle in self.break_handles:
            def broken():
                yield data[:2]
                raise RelayError("Bağlantı koptu")
            return BlobStream(broken(), total_size=len(data))

        if resolved is None:
            return BlobStream(iter([data]), total_size=len(data))
        start, end = resolved
        return BlobStream(iter([data[start:end + 1]]), total_size=len(data), start=start, end=end)

    def release(self, message_id: int) -> bool:
        self.released.append(message_id)
        return True

    def health(self) -> Dict[str, bool]:
        return {"bot_token_valid": True, "chat_accessible": True}


@pytest.fixture
def repo():
    return InMemoryRepository()


@pytest.fixture
def relay():
    return FakeRelay()


@pytest.fixture
def owner(repo):
    """Şifre hash'i gerektirmeyen servis testleri için kayıtlı kullanıcı."""
    return repo.create_owner(OwnerCreate(email="ayse@telecloud.dev", name="Ayşe", password="sifre1234"), "hash")


@pytest.fixture
def other_owner(repo):
    return repo.create_owner(OwnerCreate(email="mehmet@telecloud.dev", name="Mehmet", password="sifre1234"), "hash")
