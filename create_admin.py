# backend/create_admin.py
# İlk admin hesabını oluşturur. Bilgiler ortam değişkenlerinden okunur:
#   ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_NAME

import os
import sys

from telecloud.core.exceptions import Conflict
from telecloud.dependencies import get_db_repository
from telecloud.schemas.owner import OwnerCreate
from telecloud.services import auth_service


def create_admin(email: str, password: str, name: str, db=None):
    if db is None:
        db = get_db_repository()
    owner_create = OwnerCreate(email=email, password=password, name=name)
    return auth_service.register_owner(owner_create, db, role="admin")


def main() -> int:
    email = os.environ.get("ADMIN_EMAIL")
    password = os.environ.get("ADMIN_PASSWORD")
    name = os.environ.get("ADMIN_NAME", "Admin")
    if not email or not password:
        print("Hata: ADMIN_EMAIL ve ADMIN_PASSWORD ortam değişkenleri gerekli.")
        return 1

    try:
        admin = create_admin(email, password, name)
    except Conflict as e:
        print(f"Hata: {e.message}")
        return 1

    print(f"Başarılı! '{admin.email}' admin olarak oluşturuldu (ID: {admin.id}).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
