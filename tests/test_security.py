# tests/test_security.py
from datetime import timedelta

import pytest
from jose import jwt

from telecloud.core.config import ALGORITHM, SECRET_KEY
from telecloud.core.exceptions import Unauthenticated, Unauthorized
from telecloud.core.security import create_access_token, decode_access_token, hash_password, password_matches
from telecloud.schemas.owner import OwnerCreate
from telecloud.services import auth_service


def test_password_hashing():
    hashed = hash_password("gizli-sifre")
    assert hashed != "gizli-sifre"
    assert password_matches("gizli-sifre", hashed)
    assert not password_matches("baska", hashed)
    assert not password_matches("gizli-sifre", None)


def test_token_round_trip_carries_role():
    token_data = decode_access_token(create_access_token("ayse@telecloud.dev", "admin"))
    assert (token_data.email, token_data.role) == ("ayse@telecloud.dev", "admin")


def test_expired_token_is_rejected():
    token = create_access_token("ayse@telecloud.dev", "user", expires_delta=timedelta(seconds=-1))
    with pytest.raises(Unauthenticated) as exc_info:
        decode_access_token(token)
    assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}


@pytest.mark.parametrize("claims", [{"role": "user"}, {"sub": "a@b.dev", "role": "root"}])
def test_token_with_bad_claims_is_rejected(claims):
    token = jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)
    with pytest.raises(Unauthenticated):
        decode_access_token(token)


def test_token_signed_with_other_key_is_rejected():
    token = jwt.encode({"sub": "a@b.dev", "role": "user"}, "baska-anahtar", algorithm=ALGORITHM)
    with pytest.raises(Unauthenticated):
        decode_access_token(token)


def test_authenticate_owner(repo):
    auth_service.register_owner(OwnerCreate(email="zeynep@telecloud.dev", name="Zeynep", password="guclu-sifre"), repo)

    owner = auth_service.authenticate_owner(" Zeynep@TeleCloud.dev ", "guclu-sifre", repo)
    assert owner.role == "user"

    with pytest.raises(Unauthenticated):
        auth_service.authenticate_owner("zeynep@telecloud.dev", "yanlis", repo)
    with pytest.raises(Unauthenticated):
        auth_service.authenticate_owner("yok@telecloud.dev", "guclu-sifre", repo)

    repo.owners[owner.id].is_active = False
    with pytest.raises(Unauthorized):
        auth_service.authenticate_owner("zeynep@telecloud.dev", "guclu-sifre", repo)
