"""
Configuração do banco de dados da distribuidora
- PostgreSQL (banco hospedado/produção) via STORE_URL + STORE_API_KEY
- SQLite para desenvolvimento local e testes
"""
import logging
from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from config.settings import Settings, load_settings

logger = logging.getLogger(__name__)

# Código SQLSTATE do PostgreSQL para violação de chave estrangeira
FOREIGN_KEY_VIOLATION = "23503"

# Base para os modelos
Base = declarative_base()

# Session factory (ligada ao engine em new_session)
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, api_key: Optional[str] = None) -> Engine:
    """
    Cria o engine conforme o tipo de banco.
    Em bancos de rede a chave de acesso entra como senha da conexão.
    """
    db_url = make_url(url)

    if db_url.drivername.startswith("postgresql"):
        # Sem driver explícito o SQLAlchemy 2.1 escolhe o psycopg (v3)
        if db_url.drivername == "postgresql":
            db_url = db_url.set(drivername="postgresql+psycopg2")
        if api_key and not db_url.password:
            db_url = db_url.set(password=api_key)
        return create_engine(
            db_url,
            echo=False,
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=20,
            pool_recycle=3600,
        )

    # SQLite (desenvolvimento local / testes)
    engine = create_engine(
        db_url,
        connect_args={"check_same_thread": False},
        echo=False,
    )
    # Sem isso o SQLite não bloqueia exclusões referenciadas
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """
    Engine único da aplicação, criado na primeira chamada a partir da configuração.
    Lança ConfigError se STORE_URL/STORE_API_KEY não estiverem definidos.
    """
    settings: Settings = load_settings()
    engine = build_engine(settings.store_url, settings.store_api_key)
    logger.info("Engine criado para %s", engine.url.render_as_string(hide_password=True))
    return engine


def new_session() -> Session:
    """Abre uma sessão ligada ao engine da aplicação."""
    return SessionLocal(bind=get_engine())


def get_db():
    """
    Dependency simples para obter uma sessão do banco de dados.
    """
    db = new_session()
    try:
        yield db
    finally:
        db.close()


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    """
    True se o erro de integridade veio de uma chave estrangeira
    (PostgreSQL 23503 ou mensagem equivalente do SQLite).
    """
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code == FOREIGN_KEY_VIOLATION:
        return True
    return "foreign key constraint" in str(orig or exc).lower()


def init_db(engine: Optional[Engine] = None) -> None:
    """
    Cria todas as tabelas definidas nos modelos e as categorias padrão.
    Deve ser chamada uma vez na inicialização da aplicação.
    """
    # Importa modelos aqui para registrar no metadata
    from models import (  # noqa: F401
        category,
        customer,
        order,
        product,
        profile,
        stock_movement,
        transaction,
    )
    from services.catalog_service import CategoryService

    engine = engine or get_engine()
    Base.metadata.create_all(bind=engine)

    db = SessionLocal(bind=engine)
    try:
        CategoryService(db).seed_defaults()
    finally:
        db.close()
