from datetime import datetime, timedelta
from typing import Optional, Dict, Any, Iterable, Mapping
import json

from jose import JWTError, jwt
import bcrypt
from app.config import settings
from app.models.usuario import Role


# Cookies aceitos como fonte do token, em ordem de prioridade
TOKEN_COOKIES = ("authToken", "token", "sb-access-token")
AUTH_COOKIE_SUFFIX = "-auth-token"


def hash_password(password: str) -> str:
    """
    Gera hash da senha usando bcrypt
    """
    password_bytes = password.encode('utf-8')
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verifica se a senha corresponde ao hash
    """
    if not plain_password or not hashed_password:
        return False
    password_bytes = plain_password.encode('utf-8')
    hashed_bytes = hashed_password.encode('utf-8')
    return bcrypt.checkpw(password_bytes, hashed_bytes)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Cria um JWT token com os dados fornecidos

    O token deve conter:
    - sub: ID do usuário (string)
    - email
    - role: papel principal (admin, fornecedor, cliente)
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})

    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decodifica e valida um JWT token

    Raises:
        JWTError: Se o token for inválido ou expirado
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload
    except JWTError as e:
        raise JWTError(f"Token inválido: {str(e)}")


def _token_from_auth_cookie(raw: str) -> Optional[str]:
    """Cookie gerenciado pelo SDK: array JSON cujo primeiro item é o access token"""
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if isinstance(parsed, list) and parsed and isinstance(parsed[0], str):
        return parsed[0] or None
    return None


def token_from_sources(headers: Mapping[str, str], cookies: Mapping[str, str]) -> Optional[str]:
    """
    Resolve o token de acesso. A primeira fonte não vazia vence:

    1. Header Authorization: Bearer <token>
    2. Cookie "<projeto>-auth-token" (array JSON)
    3. Cookies authToken, token, sb-access-token
    """
    auth_header = headers.get("authorization") or headers.get("Authorization") or ""
    if auth_header.startswith("Bearer "):
        token = auth_header[len("Bearer "):].strip()
        if token:
            return token

    for name, value in cookies.items():
        if name.endswith(AUTH_COOKIE_SUFFIX) and value:
            token = _token_from_auth_cookie(value)
            if token:
                return token

    for name in TOKEN_COOKIES:
        value = cookies.get(name)
        if value:
            return value

    return None


def resolve_token(request) -> Optional[str]:
    """Token da request (header tem precedência sobre cookies)"""
    return token_from_sources(request.headers, request.cookies)


def resolve_primary_role(roles: Optional[Iterable[str]], role: Optional[str] = None) -> Role:
    """
    Papel principal do usuário.

    Precedência: admin > fornecedor > cliente. Quando a lista está vazia,
    o papel escalar é usado.
    """
    valores = {str(getattr(r, "value", r)).lower() for r in (roles or []) if r}
    if not valores and role:
        valores = {str(getattr(role, "value", role)).lower()}

    if Role.ADMIN.value in valores:
        return Role.ADMIN
    if Role.FORNECEDOR.value in valores:
        return Role.FORNECEDOR
    return Role.CLIENTE


def has_role(user, role: Role) -> bool:
    """Verifica o papel escalar ou a lista de papéis do usuário"""
    if user is None:
        return False
    if user.role == role:
        return True
    return role.value in (user.roles or [])
