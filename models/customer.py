from sqlalchemy import Boolean, Column, Integer, String, Text

from config.database import Base


class Customer(Base):
    """
    Clientes com programa de fidelidade.
    loyalty_count: galões de água 20L acumulados; a cada 10, um brinde.
    """

    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    address = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    loyalty_count = Column(Integer, nullable=True, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
