# backend/telecloud/core/file_rules.py
# Dosya/klasör adı, MIME tipi ve boyut kuralları.
# Servis katmanı ve şemalar (formatted_size) tarafından ortak kullanılır.

import os
import re
from typing import Optional

from telecloud.core.exceptions import InvalidArgument

MAX_NAME_LENGTH = 255
MAX_FOLDER_NAME_LENGTH = 100

# Kontrol karakterleri ve < > : " / \ | ? *
INVALID_NAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
MIME_TYPE_PATTERN = re.compile(r"^[a-z]+/[a-z0-9\-\+\.]+$", re.IGNORECASE)

RESERVED_NAMES = {
    "con", "prn", "aux", "nul",
    "com1", "com2", "com3", "com4", "com5", "com6", "com7", "com8", "com9",
    "lpt1", "lpt2", "lpt3", "lpt4", "lpt5", "lpt6", "lpt7", "lpt8", "lpt9",
}

# --- GÜVENLİK AYARLARI ---
DANGEROUS_EXTENSIONS = {
    '.exe', '.bat', '.cmd', '.com', '.pif', '.scr', '.vbs', '.js', '.jar',
    '.ws', '.wsf', '.wsc', '.msi', '.msp', '.dll', '.sys', '.scf'
}
DANGEROUS_MIME_TYPES = {
    'application/x-executable',
    'application/x-msdownload',
    'application/x-msdos-program',
    'application/x-msi',
    'application/x-winexe',
    'text/javascript',
    'application/javascript',
}

SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


def sanitize_file_name(filename: Optional[str]) -> str:
    """
    Dosya adını güvenli hale getirir. Asla reddetmez, yeniden yazar:
    yasak karakterler '_' olur, baştaki/sondaki boşluk ve noktalar kırpılır,
    boş kalırsa 'file' kullanılır, 255 karakteri aşarsa uzantı korunarak kısaltılır.
    """
    filename = INVALID_NAME_CHARS.sub("_", filename or "")
    filename = filename.strip().strip(".").strip()

    if not filename:
        filename = "file"

    if len(filename) > MAX_NAME_LENGTH:
        name, ext = os.path.splitext(filename)
        if len(ext) >= MAX_NAME_LENGTH:
            ext = ""
        filename = name[:MAX_NAME_LENGTH - len(ext)] + ext

    return filename


def split_extension(filename: str) -> tuple[str, str]:
    """'rapor.final.pdf' -> ('rapor.final', '.pdf')"""
    return os.path.splitext(filename)


def normalize_mime_type(mime_type: Optional[str]) -> str:
    """MIME tipini küçük harfe çevirir ve 'type/subtype' formatını doğrular."""
    normalized = (mime_type or "").strip().lower()
    if not MIME_TYPE_PATTERN.match(normalized):
        raise InvalidArgument(f"Geçersiz MIME tipi: '{mime_type}'")
    return normalized


def is_allowed_file_type(filename: str, mime_type: str) -> bool:
    _, ext = split_extension(filename)
    if ext.lower() in DANGEROUS_EXTENSIONS:
        return False
    return mime_type.lower() not in DANGEROUS_MIME_TYPES


def validate_folder_name(name: Optional[str]) -> str:
    """
    Klasör adını doğrular ve kırpılmış halini döndürür.
    Dosya adlarından farklı olarak burada yeniden yazma yok, hata fırlatılır.
    """
    trimmed = (name or "").strip()
    if not trimmed:
        raise InvalidArgument("Klasör adı boş olamaz.")
    if len(trimmed) > MAX_FOLDER_NAME_LENGTH:
        raise InvalidArgument(f"Klasör adı en fazla {MAX_FOLDER_NAME_LENGTH} karakter olabilir.")
    if INVALID_NAME_CHARS.search(trimmed):
        raise InvalidArgument('Klasör adı şu karakterleri içeremez: < > : " / \\ | ? *')
    if trimmed.lower() in RESERVED_NAMES:
        raise InvalidArgument(f"'{trimmed}' sistem tarafından ayrılmış bir isim.")
    return trimmed


def format_file_size(size: Optional[int]) -> str:
    """1024 tabanlı, iki ondalık: 1536 -> '1.5 KB', 0 -> '0 Bytes'."""
    if not size:
        return "0 Bytes"
    value = float(size)
    unit_index = 0
    while value >= 1024 and unit_index < len(SIZE_UNITS) - 1:
        value /= 1024
        unit_index += 1
    # 1.50 -> 1.5, 2.00 -> 2
    formatted = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{formatted} {SIZE_UNITS[unit_index]}"
