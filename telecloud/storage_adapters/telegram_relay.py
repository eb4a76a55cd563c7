# backend/telecloud/storage_adapters/telegram_relay.py
# Telegram Bot API'yi blob deposu olarak kullanan adaptör.
# Dosyalar bir kanala/sohbete 'document' olarak gönderilir, file_id handle olarak saklanır.

import logging
from typing import Dict, Iterator, Optional

import requests

from telecloud.core.config import (
    TELEGRAM_API_BASE,
    TELEGRAM_BOT_TOKEN,
    TELEGRAM_CHAT_ID,
    TELEGRAM_TIMEOUT_SECONDS,
)
from telecloud.core.exceptions import RangeNotSatisfiable, RelayError
from telecloud.storage_adapters.base import BaseBlobRelay, BlobStream, ByteRange, StoredBlob

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024


def resolve_range(byte_range: Optional[ByteRange], total_size: int):
    """
    İstenen aralığı dosya boyutuna göre çözer.
    Dönüş: (start, end) dahil, ya da aralık yoksa None.
    """
    if byte_range is None:
        return None
    start, end = byte_range
    if start < 0 or start >= total_size:
        raise RangeNotSatisfiable(total_size)
    end = total_size - 1 if end is None else min(end, total_size - 1)
    if end < start:
        raise RangeNotSatisfiable(total_size)
    return start, end


def _slice_chunks(chunks: Iterator[bytes], skip: int, length: int) -> Iterator[bytes]:
    """Sunucu Range başlığını yok sayıp 200 dönerse aralığı lokalde keser."""
    remaining = length
    for chunk in chunks:
        if skip:
            if len(chunk) <= skip:
                skip -= len(chunk)
                continue
            chunk = chunk[skip:]
            skip = 0
        if len(chunk) >= remaining:
            yield chunk[:remaining]
            return
        remaining -= len(chunk)
        yield chunk


class TelegramRelay(BaseBlobRelay):
    def __init__(
        self,
        bot_token: Optional[str] = None,
        chat_id: Optional[str] = None,
        api_base: str = TELEGRAM_API_BASE,
        timeout: float = TELEGRAM_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.bot_token = bot_token or TELEGRAM_BOT_TOKEN
        self.chat_id = chat_id or TELEGRAM_CHAT_ID
        if not self.bot_token or not self.chat_id:
            raise ValueError("TELEGRAM_BOT_TOKEN ve TELEGRAM_CHAT_ID ayarlanmalı.")
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _method_url(self, method: str) -> str:
        return f"{self.api_base}/bot{self.bot_token}/{method}"

    def _file_url(self, file_path: str) -> str:
        return f"{self.api_base}/file/bot{self.bot_token}/{file_path}"

    def _call(self, method: str, data: Optional[dict] = None, files: Optional[dict] = None) -> dict:
        """Bot API çağrısı yapar, 'result' alanını döndürür."""
        try:
            response = self.session.post(
                self._method_url(method), data=data, files=files, timeout=self.timeout
            )
        except requests.RequestException as e:
            # Token URL içinde geçtiği için istisna metnini loglamıyoruz
            logger.warning("Telegram '%s' çağrısı ağ hatası ile başarısız: %s", method, type(e).__name__)
            raise RelayError(f"Telegram'a ulaşılamadı ({type(e).__name__}).")

        try:
            payload = response.json()
        except ValueError:
            raise RelayError(
                f"Telegram geçersiz cevap döndürdü (HTTP {response.status_code}).",
                upstream_status=response.status_code,
            )

        if not payload.get("ok"):
            description = payload.get("description") or "Bilinmeyen hata"
            error_code = payload.get("error_code") or response.status_code
            logger.warning("Telegram '%s' hatası: %s (%s)", method, description, error_code)
            raise RelayError(f"Telegram API hatası: {description}", upstream_status=error_code)
        return payload.get("result") or {}

    # --- Yükleme ---
    def store(self, content: bytes, filename: str, mime_type: str) -> StoredBlob:
        result = self._call(
            "sendDocument",
            data={"chat_id": self.chat_id, "caption": f"📁 {filename}"},
            files={"document": (filename, content, mime_type)},
        )
        document = result.get("document")
        if not document or not document.get("file_id"):
            raise RelayError("Telegram cevabında document.file_id yok.")
        logger.info("Telegram'a yüklendi: message_id=%s, size=%s", result.get("message_id"), document.get("file_size"))
        return StoredBlob(
            handle=document["file_id"],
            message_id=result.get("message_id"),
            size=document.get("file_size"),
        )

    # --- İndirme ---
    def _get_file(self, handle: str) -> dict:
        result = self._call("getFile", data={"file_id": handle})
        if not result.get("file_path"):
            raise RelayError("Telegram dosya yolu döndürmedi.")
        return result

    def fetch_stream(self, handle: str, byte_range: Optional[ByteRange] = None) -> BlobStream:
        file_info = self._get_file(handle)
        total_size = file_info.get("file_size")

        headers = {}
        resolved = None
        if byte_range is not None and total_size is not None:
            resolved = resolve_range(byte_range, int(total_size))
            headers["Range"] = f"bytes={resolved[0]}-{resolved[1]}"

        try:
            response = self.session.get(
                self._file_url(file_info["file_path"]), headers=headers, stream=True, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning("Telegram dosya indirme ağ hatası: %s", type(e).__name__)
            raise RelayError(f"Telegram'dan dosya indirilemedi ({type(e).__name__}).")

        if response.status_code >= 400:
            response.close()
            raise RelayError(
                f"Telegram dosya indirme hatası (HTTP {response.status_code}).",
                upstream_status=response.status_code,
            )

        if total_size is None:
            # getFile boyut döndürmediyse Content-Length'e güven
            total_size = int(response.headers.get("Content-Length") or 0)
            if byte_range is not None:
                try:
                    resolved = resolve_range(byte_range, total_size)
                except RangeNotSatisfiable:
                    response.close()
                    raise

        chunks = response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE)
        if resolved is None:
            return BlobStream(chunks, total_size=int(total_size), on_close=response.close)

        start, end = resolved
        length = end - start + 1
        if response.status_code == 206:
            chunks = _slice_chunks(chunks, 0, length)
        else:
            chunks = _slice_chunks(chunks, start, length)
        return BlobStream(chunks, total_size=int(total_size), start=start, end=end, on_close=response.close)

    # --- Silme ---
    def release(self, message_id: int) -> bool:
        try:
            self._call("deleteMessage", data={"chat_id": self.chat_id, "message_id": message_id})
            return True
        except RelayError as e:
            logger.warning("Telegram mesajı silinemedi (message_id=%s): %s", message_id, e.message)
            return False

    def health(self) -> Dict[str, bool]:
        status = {"bot_token_valid": False, "chat_accessible": False}
        try:
            self._call("getMe")
            status["bot_token_valid"] = True
            self._call("getChat", data={"chat_id": self.chat_id})
            status["chat_accessible"] = True
        except RelayError as e:
            logger.warning("Telegram sağlık kontrolü başarısız: %s", e.message)
        return status
