from typing import Optional
from pydantic import BaseModel

from models.enums import Role, UserStatus


class CurrentUser(BaseModel):
    """Authenticated caller resolved from a bearer token."""
    id: str
    email: str
    nome_completo: Optional[str] = None
    telefone: Optional[str] = None
    status: UserStatus = UserStatus.ACTIVE
    role: Role = Role.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
