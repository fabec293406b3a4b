"""
Perfis de acesso e tabela de permissões.
A tabela é consultada uma única vez por tela (AuthService.require_capability).
"""
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    COURIER = "entregador"
    PENDING = "pending"

    @classmethod
    def parse(cls, value: str | None) -> "Role":
        """Perfil desconhecido ou vazio é tratado como pendente."""
        try:
            return cls(value)
        except ValueError:
            return cls.PENDING

    @property
    def label(self) -> str:
        return ROLE_LABELS[self]


class Capability(str, Enum):
    VIEW_DASHBOARD = "view_dashboard"
    CREATE_ORDERS = "create_orders"
    VIEW_ORDERS = "view_orders"
    UPDATE_DELIVERY_STATUS = "update_delivery_status"
    UPDATE_PAYMENT_STATUS = "update_payment_status"
    DELETE_ORDERS = "delete_orders"
    VIEW_DELIVERED_ORDERS = "view_delivered_orders"
    MANAGE_PRODUCTS = "manage_products"
    MANAGE_CUSTOMERS = "manage_customers"
    MANAGE_FINANCE = "manage_finance"
    MANAGE_TEAM = "manage_team"


ROLE_LABELS = {
    Role.ADMIN: "Administrador (Acesso Total)",
    Role.COURIER: "Entregador (Acesso às Entregas)",
    Role.PENDING: "Aguardando Avaliação (Bloqueado)",
}

CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.COURIER: frozenset(
        {
            Capability.VIEW_ORDERS,
            Capability.UPDATE_DELIVERY_STATUS,
        }
    ),
    Role.PENDING: frozenset(),
}


class PermissionDenied(Exception):
    """O perfil atual não tem a permissão exigida."""

    def __init__(self, role: Role, capability: Capability):
        super().__init__(f"Perfil '{role.value}' não pode executar '{capability.value}'")
        self.role = role
        self.capability = capability


def can(role: Role, capability: Capability) -> bool:
    return capability in CAPABILITIES.get(role, frozenset())


def authorize(role: Role, capability: Capability) -> None:
    if not can(role, capability):
        raise PermissionDenied(role, capability)
