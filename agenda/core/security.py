from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from agenda.core.config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY


# =========================
# TOKEN JWT
# =========================

# tokens são emitidos pelo serviço de autenticação; aqui só validamos
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


@dataclass
class CurrentUser:
    subject: str
    role: str


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


# =========================
# USUÁRIO AUTENTICADO
# =========================

def get_current_user(token: str = Depends(oauth2_scheme)) -> CurrentUser:

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Não foi possível validar as credenciais",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        subject: str = payload.get("sub")

        if subject is None:
            raise credentials_exception

    except JWTError:
        raise credentials_exception

    return CurrentUser(subject=subject, role=payload.get("role", "customer"))


# =========================
# SOMENTE ADMINISTRADOR DO NEGÓCIO
# =========================

def get_current_admin(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:

    if current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Apenas administradores podem acessar esta rota"
        )

    return current_user
