# backend/telecloud/schemas/common.py

import math
from typing import Optional
from pydantic import BaseModel


class _Unset:
    """
    'Parametre hiç gönderilmedi' ile 'açıkça None (kök dizin)' gönderildi
    durumlarını ayırt etmek için kullanılan işaretçi.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


UNSET = _Unset()


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total_items: int) -> "Pagination":
        total_pages = math.ceil(total_items / limit) if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total_items,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


class MessageOut(BaseModel):
    message: str


def parse_location_param(value: Optional[str]):
    """
    Query parametresini konum filtresine çevirir:
    gönderilmemiş -> UNSET (hepsi), 'null' / 'root' / '' -> None (kök dizin), diğer -> id
    """
    if value is None:
        return UNSET
    if value.strip().lower() in ("", "null", "root"):
        return None
    return value
