# attendify/schemas/token.py
from pydantic import BaseModel
from attendify.schemas.user import UserOut

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class TokenPair(Token):
    refresh_token: str
    expires_in: int
    user: UserOut
