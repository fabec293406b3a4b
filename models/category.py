from sqlalchemy import Column, Integer, String

from config.database import Base


class Category(Base):
    """
    Categoria de produto, com emoji para exibição.
    """

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    emoji = Column(String(16), nullable=False, default="📦")
