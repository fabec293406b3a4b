import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String

from config.database import Base


class Profile(Base):
    """
    Membro da equipe.
    Perfis suportados (role):
    - admin
    - entregador
    - pending (recém-cadastrado, aguardando aprovação)
    """

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=True)
    role = Column(String(20), nullable=True, default="pending")
    created_at = Column(DateTime, nullable=False, default=datetime.now)
