# backend/telecloud/api/v1/auth.py

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from slowapi import Limiter
from slowapi.util import get_remote_address

from telecloud.core.config import RATE_LIMIT_ENABLED
from telecloud.core.security import create_access_token
from telecloud.dependencies import get_current_owner, get_db_repository
from telecloud.repositories.base import BaseRepository
from telecloud.schemas.owner import OwnerCreate, OwnerInDB, OwnerOut, Token
from telecloud.services import auth_service

limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)

router = APIRouter()


@router.post("/register", response_model=OwnerOut, status_code=status.HTTP_201_CREATED)
@limiter.limit("3/hour")  # Rate limiting: 3 kayıt/saat
def register_new_owner(
    request: Request,
    owner_create: OwnerCreate,
    db: BaseRepository = Depends(get_db_repository)
):
    new_owner = auth_service.register_owner(owner_create, db)
    return OwnerOut.model_validate(new_owner)


@router.post("/login", response_model=Token)
@limiter.limit("10/minute")  # Rate limiting: 10 istek/dakika
def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: BaseRepository = Depends(get_db_repository)
):
    owner = auth_service.authenticate_owner(
        email=form_data.username,
        password=form_data.password,
        db=db
    )
    access_token = create_access_token(owner.email, owner.role)
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=OwnerOut)
def read_current_owner(current_owner: OwnerInDB = Depends(get_current_owner)):
    """Giriş yapmış kullanıcının bilgileri (önbellekteki kullanım sayaçlarıyla)."""
    return OwnerOut.model_validate(current_owner)
