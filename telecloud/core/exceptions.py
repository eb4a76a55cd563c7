# backend/telecloud/core/exceptions.py
# Servis katmanının fırlattığı domain hataları.
# main.py bunları tek bir handler ile HTTP cevabına çevirir.

from typing import Dict, Optional


class TeleCloudError(Exception):
    """Tüm domain hataları için temel sınıf."""
    status_code = 500
    kind = "Internal"

    def __init__(self, message: str = "", headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.headers = headers


class InvalidArgument(TeleCloudError):
    """Geçersiz isim, döngüsel referans, boş dosya vb."""
    status_code = 400
    kind = "InvalidArgument"


class Unauthenticated(TeleCloudError):
    """Token yok, bozuk, süresi dolmuş ya da sahibi artık yok."""
    status_code = 401
    kind = "Unauthenticated"

    def __init__(self, message: str = "Kimlik bilgileri doğrulanamadı."):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Unauthorized(TeleCloudError):
    """Kimlik geçerli ama hesap pasif ya da rol yetersiz."""
    status_code = 403
    kind = "Unauthorized"


class NotFound(TeleCloudError):
    """Kayıt yok ya da çağırana ait değil (ikisi bilerek ayırt edilmez)."""
    status_code = 404
    kind = "NotFound"


class Conflict(TeleCloudError):
    status_code = 409
    kind = "Conflict"


class PayloadTooLarge(TeleCloudError):
    status_code = 413
    kind = "PayloadTooLarge"


class UnsupportedMediaType(TeleCloudError):
    status_code = 415
    kind = "UnsupportedMediaType"


class RangeNotSatisfiable(TeleCloudError):
    status_code = 416
    kind = "RangeNotSatisfiable"

    def __init__(self, total_size: int):
        super().__init__(
            f"İstenen aralık karşılanamıyor (dosya boyutu: {total_size} byte).",
            headers={"Content-Range": f"bytes */{total_size}"},
        )
        self.total_size = total_size


class ServiceUnavailable(TeleCloudError):
    status_code = 503
    kind = "ServiceUnavailable"


class InternalError(TeleCloudError):
    status_code = 500
    kind = "Internal"


class RelayError(ServiceUnavailable):
    """
    Uzak blob deposundan (Telegram) dönen hata.
    'upstream_status' Telegram'ın error_code'u veya HTTP durum kodudur.
    """

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status
