"""
Authentication routes and dependencies

Identity lives in the BaaS auth service: tokens are the BaaS access tokens
and are validated against it on every request.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

from crud.user import UserRepository
from database import get_db
from models.enums import Role, UserStatus
from models.user import CurrentUser
from services.email_service import EmailService, get_email_service
from services.supabase_client import SupabaseClient, SupabaseError
from utils.security_utils import validate_email, validate_password_strength

logger = logging.getLogger(__name__)

# Auth answers that mean "bad credentials" rather than "BaaS is broken"
CREDENTIAL_ERROR_CODES = (400, 401, 403, 422)

# Create auth router
auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


# Request models
class RegisterRequest(BaseModel):
    email: str
    senha: str
    nome_completo: str
    telefone: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    senha: str


class ProfileUpdateRequest(BaseModel):
    nome_completo: Optional[str] = None
    telefone: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    senha_atual: str
    nova_senha: str


def _public_user(row: dict, role: Role) -> dict:
    user = dict(row)
    user["role"] = role.value
    return user


def _user_status(row: dict) -> UserStatus:
    try:
        return UserStatus(row.get("status") or UserStatus.ACTIVE.value)
    except ValueError:
        return UserStatus.INACTIVE


# Dependency for protected routes
async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: SupabaseClient = Depends(get_db),
) -> CurrentUser:
    """
    Resolve the caller from ``Authorization: Bearer <token>``.

    The token is validated by the BaaS identity service, the profile row
    must exist and be active, and the role comes from one user_roles lookup.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Token não fornecido")

    token = authorization[len("Bearer "):].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Token não fornecido")

    auth_user = await db.get_auth_user(token)
    if not auth_user or not auth_user.get("id"):
        raise HTTPException(status_code=401, detail="Token inválido")

    user_repo = UserRepository(db)
    row = await user_repo.get_user_by_id(auth_user["id"])
    if not row:
        raise HTTPException(status_code=401, detail="Usuário não encontrado")

    status = _user_status(row)
    if status != UserStatus.ACTIVE:
        raise HTTPException(status_code=401, detail="Conta inativa")

    role = await user_repo.get_role(row["id"])
    return CurrentUser(
        id=row["id"],
        email=row.get("email") or auth_user.get("email") or "",
        nome_completo=row.get("nome_completo"),
        telefone=row.get("telefone"),
        status=status,
        role=role,
    )


async def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Dependency for /api/admin routes: non-admins get 403."""
    if not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Acesso negado. Apenas administradores.")
    return current_user


@auth_router.post("/register", status_code=201)
async def register(
    request: RegisterRequest,
    db: SupabaseClient = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """Create auth user, profile row and customer role"""
    email = request.email.strip().lower()
    if not email or not request.senha or not request.nome_completo.strip():
        raise HTTPException(status_code=400, detail="Email, senha e nome completo são obrigatórios")
    if not validate_email(email):
        raise HTTPException(status_code=400, detail="Email inválido")
    try:
        validate_password_strength(request.senha)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        auth_user = await db.create_auth_user(email, request.senha)
    except SupabaseError as e:
        if e.status_code in CREDENTIAL_ERROR_CODES:
            raise HTTPException(status_code=400, detail=e.message)
        raise

    user_repo = UserRepository(db)
    try:
        user = await user_repo.create_user({
            "id": auth_user["id"],
            "email": email,
            "nome_completo": request.nome_completo.strip(),
            "telefone": request.telefone,
        })
    except SupabaseError as e:
        logger.error(f"Profile creation failed for {email}: {e}")
        # Remove the orphaned auth user
        await db.delete_auth_user(auth_user["id"])
        raise HTTPException(status_code=400, detail="Erro ao criar usuário")

    await user_repo.assign_role(user["id"], Role.CUSTOMER)
    await email_service.send_welcome(user)

    logger.info(f"User {user['id']} registered")
    return {"message": "Usuário criado com sucesso", "user": _public_user(user, Role.CUSTOMER)}


@auth_router.post("/login")
async def login(request: LoginRequest, db: SupabaseClient = Depends(get_db)):
    """Login and get the BaaS access token"""
    email = request.email.strip().lower()
    if not email or not request.senha:
        raise HTTPException(status_code=400, detail="Email e senha são obrigatórios")

    try:
        session = await db.sign_in_with_password(email, request.senha)
    except SupabaseError as e:
        if e.status_code in CREDENTIAL_ERROR_CODES:
            raise HTTPException(status_code=401, detail="Credenciais inválidas")
        raise

    auth_user = session.get("user") or {}
    user_repo = UserRepository(db)
    row = await user_repo.get_user_by_id(auth_user["id"])
    if not row:
        # Auth user created outside the register flow
        row = await user_repo.create_user({
            "id": auth_user["id"],
            "email": email,
            "nome_completo": email.split("@")[0],
        })

    if _user_status(row) != UserStatus.ACTIVE:
        raise HTTPException(status_code=401, detail="Conta inativa")

    role = await user_repo.get_role(row["id"])
    return {"token": session.get("access_token"), "user": _public_user(row, role)}


@auth_router.get("/me")
async def me(current_user: CurrentUser = Depends(get_current_user)):
    return current_user.model_dump()


@auth_router.put("/profile")
async def update_profile(
    request: ProfileUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: SupabaseClient = Depends(get_db),
):
    updates = request.model_dump(exclude_unset=True)
    if "nome_completo" in updates and not (updates["nome_completo"] or "").strip():
        raise HTTPException(status_code=400, detail="Nome completo não pode ser vazio")

    updated = await UserRepository(db).update_user(current_user.id, updates)
    if not updated:
        raise HTTPException(status_code=404, detail="Usuário não encontrado")
    return {"message": "Perfil atualizado com sucesso", "user": _public_user(updated, current_user.role)}


@auth_router.put("/change-password")
async def change_password(
    request: ChangePasswordRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: SupabaseClient = Depends(get_db),
):
    try:
        validate_password_strength(request.nova_senha)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # Verify current password by signing in with it
    try:
        await db.sign_in_with_password(current_user.email, request.senha_atual)
    except SupabaseError as e:
        if e.status_code in CREDENTIAL_ERROR_CODES:
            raise HTTPException(status_code=400, detail="Senha atual incorreta")
        raise

    await db.update_auth_user(current_user.id, {"password": request.nova_senha})
    logger.info(f"Password changed for user {current_user.id}")
    return {"message": "Senha alterada com sucesso"}
