from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, Index
import enum
from app.models.base import Base, TimestampMixin, enum_column


class Role(str, enum.Enum):
    """
    Papéis do marketplace
    Determinam o dashboard e as permissões da API
    """
    ADMIN = "admin"              # Administração da plataforma
    FORNECEDOR = "fornecedor"    # Responde cotações com propostas
    CLIENTE = "cliente"          # Solicita cotações para suas obras


class UserStatus(str, enum.Enum):
    """Situação da conta"""
    ACTIVE = "active"
    PENDING = "pending"          # Conta criada pelo admin, aguardando primeiro acesso
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


class Usuario(Base, TimestampMixin):
    """
    Usuários da plataforma (clientes, fornecedores e administradores)

    Um usuário pode ter vários papéis em `roles`; o papel principal
    (`role`) segue a precedência admin > fornecedor > cliente.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # Credenciais
    email = Column(String(200), nullable=False, unique=True, index=True)
    senha_hash = Column(String(255), nullable=False)  # bcrypt

    # Dados pessoais
    nome = Column(String(200), nullable=True)
    telefone = Column(String(20), nullable=True)
    cpf_cnpj = Column(String(14), nullable=True)  # Apenas números

    # Perfil e permissões
    role = Column(enum_column(Role, "role_enum"), default=Role.CLIENTE, nullable=False)
    roles = Column(JSON, nullable=False, default=list)  # ["cliente", "fornecedor"]
    status = Column(enum_column(UserStatus, "user_status_enum"), default=UserStatus.ACTIVE, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)

    # Vínculos com as entidades de negócio
    cliente_id = Column(Integer, nullable=True, index=True)
    fornecedor_id = Column(Integer, nullable=True, index=True)

    # Ciclo de vida da senha
    must_change_password = Column(Boolean, default=False, nullable=False)
    password_changed_at = Column(DateTime, nullable=True)
    last_login_at = Column(DateTime, nullable=True)

    # Autenticação em dois fatores (TOTP)
    two_factor_enabled = Column(Boolean, default=False, nullable=False)
    two_factor_secret = Column(String(64), nullable=True)
    two_factor_backup_codes = Column(JSON, nullable=True)
    two_factor_enrolled_at = Column(DateTime, nullable=True)

    # Preferências de notificação (perfil do fornecedor)
    preferencias = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<Usuario {self.email} ({self.role})>"

    __table_args__ = (
        Index('idx_users_role_status', 'role', 'status'),
    )
