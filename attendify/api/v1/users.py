# attendify/api/v1/users.py
from fastapi import APIRouter, Depends

from attendify.api.deps import get_current_user
from attendify.models.user import User
from attendify.schemas.user import QRCodeOut, UserOut

router = APIRouter()

@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user

@router.get("/me/qrcode", response_model=QRCodeOut)
def my_qrcode(user: User = Depends(get_current_user)):
    # durante um evento ativo, devolve o QR específico do evento
    return user
