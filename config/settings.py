"""
Configuração da aplicação lida do ambiente (ou do arquivo .env na raiz do projeto).

Variáveis obrigatórias:
- STORE_URL: endereço do banco (URL SQLAlchemy), ex.:
  postgresql://postgres@db.exemplo.supabase.co:5432/postgres
- STORE_API_KEY: chave de acesso ao banco (usada como senha em bancos de rede)

Opcional:
- LOG_LEVEL: nível de log (padrão INFO)
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).parent.parent


class ConfigError(RuntimeError):
    """Configuração obrigatória ausente ou inválida."""


@dataclass(frozen=True)
class Settings:
    store_url: str
    store_api_key: str
    log_level: str = "INFO"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Lê a configuração. Sem `environ`, carrega o .env da raiz (se existir) e usa os.environ.
    A ausência de STORE_URL ou STORE_API_KEY é erro fatal.
    """
    if environ is None:
        env_path = PROJECT_ROOT / ".env"
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)
        environ = os.environ

    store_url = (environ.get("STORE_URL") or "").strip()
    store_api_key = (environ.get("STORE_API_KEY") or "").strip()

    missing = [
        name
        for name, value in (("STORE_URL", store_url), ("STORE_API_KEY", store_api_key))
        if not value
    ]
    if missing:
        raise ConfigError(
            "Configuração obrigatória ausente: " + ", ".join(missing)
            + ". Defina no ambiente ou no arquivo .env."
        )

    return Settings(
        store_url=store_url,
        store_api_key=store_api_key,
        log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
    )
