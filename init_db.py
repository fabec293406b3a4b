"""
Script para inicializar o banco de dados da distribuidora.
- Cria todas as tabelas
- Cadastra as categorias padrão
- Promove o cadastro mais antigo a admin, se ainda não houver nenhum
"""
from config.database import init_db, new_session
from config.settings import load_settings
from services.auth_service import ensure_first_admin
from utils.logger import setup_logging


def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)

    print("📦 Inicializando banco de dados da distribuidora...")
    init_db()
    print("✅ Tabelas e categorias padrão criadas (se não existiam).")

    db = new_session()
    try:
        ensure_first_admin(db)
    finally:
        db.close()
    print("ℹ️ Novos cadastros entram como pendentes; aprove-os na tela Equipe.")


if __name__ == "__main__":
    main()
