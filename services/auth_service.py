"""
Serviço de autenticação e controle de acesso da distribuidora.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import bcrypt
import streamlit as st
from sqlalchemy.orm import Session

from models.profile import Profile
from services.permissions import Capability, Role, can

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
MAX_FAILED_ATTEMPTS = 5
FAILED_ATTEMPTS_WINDOW = 300  # segundos


class AuthError(Exception):
    """Erro de autenticação com mensagem pronta para a tela."""

    message = "Ocorreu um erro durante a autenticação."

    def __str__(self) -> str:
        return self.message


class InvalidCredentials(AuthError):
    message = "E-mail ou senha inválidos."


class RateLimited(AuthError):
    message = "Limite de tentativas de segurança atingido. Tente novamente mais tarde."


class AlreadyRegistered(AuthError):
    message = "Este e-mail já está cadastrado."


@dataclass(frozen=True)
class UserSession:
    """
    Sessão do usuário logado. Criada no login, descartada no logout
    e passada explicitamente para as telas.
    """

    profile_id: str
    email: str
    name: str
    role: Role

    @classmethod
    def from_profile(cls, profile: Profile) -> "UserSession":
        return cls(
            profile_id=profile.id,
            email=profile.email,
            name=profile.name or profile.email,
            role=Role.parse(profile.role),
        )

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_pending(self) -> bool:
        return self.role is Role.PENDING

    def can(self, capability: Capability) -> bool:
        return can(self.role, capability)


class AuthService:
    """
    Gerencia credenciais, sessão e permissões (roles).
    """

    # Compartilhado entre as sessões do servidor (uma thread por sessão)
    _failed_attempts: Dict[str, List[float]] = {}
    _attempts_lock = threading.Lock()

    @staticmethod
    def hash_password(password: str) -> str:
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    @staticmethod
    def verify_password(password: str, hashed: str) -> bool:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))

    @staticmethod
    def _normalize_email(email: str) -> str:
        return (email or "").strip().lower()

    # ----- Limite de tentativas -----

    @classmethod
    def _prune(cls, now: float) -> None:
        """Descarta tentativas fora da janela e e-mails sem tentativas recentes. Exige o lock."""
        for email in list(cls._failed_attempts):
            recent = [t for t in cls._failed_attempts[email] if now - t < FAILED_ATTEMPTS_WINDOW]
            if recent:
                cls._failed_attempts[email] = recent
            else:
                del cls._failed_attempts[email]

    @classmethod
    def _recent_failures(cls, email: str) -> List[float]:
        with cls._attempts_lock:
            cls._prune(time.monotonic())
            return list(cls._failed_attempts.get(email, []))

    @classmethod
    def _register_failure(cls, email: str) -> None:
        with cls._attempts_lock:
            now = time.monotonic()
            cls._prune(now)
            cls._failed_attempts.setdefault(email, []).append(now)

    @classmethod
    def _clear_failures(cls, email: str) -> None:
        with cls._attempts_lock:
            cls._failed_attempts.pop(email, None)

    @classmethod
    def reset_attempts(cls) -> None:
        with cls._attempts_lock:
            cls._failed_attempts.clear()

    # ----- Credenciais -----

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Profile:
        email = AuthService._normalize_email(email)
        if len(AuthService._recent_failures(email)) >= MAX_FAILED_ATTEMPTS:
            logger.warning("Login bloqueado por excesso de tentativas: %s", email)
            raise RateLimited()

        profile = db.query(Profile).filter(Profile.email == email).first()
        if profile and AuthService.verify_password(password, profile.password_hash):
            AuthService._clear_failures(email)
            return profile

        AuthService._register_failure(email)
        logger.info("Falha de login para %s", email)
        raise InvalidCredentials()

    @staticmethod
    def create_profile(
        db: Session,
        email: str,
        password: str,
        name: str,
        role: str = Role.PENDING.value,
    ) -> Profile:
        email = AuthService._normalize_email(email)
        if not email or "@" not in email:
            raise ValueError("Informe um e-mail válido.")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValueError(f"A senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres.")

        if db.query(Profile).filter(Profile.email == email).first():
            raise AlreadyRegistered()

        profile = Profile(
            email=email,
            password_hash=AuthService.hash_password(password),
            name=(name or "").strip() or None,
            role=role,
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
        logger.info("Novo cadastro %s com perfil %s", email, role)
        return profile

    @staticmethod
    def sign_in(db: Session, email: str, password: str) -> UserSession:
        return UserSession.from_profile(AuthService.authenticate(db, email, password))

    @staticmethod
    def sign_up(db: Session, email: str, password: str, name: str) -> UserSession:
        """
        Cadastra um novo usuário (perfil pendente).
        Se o e-mail já existir, tenta entrar com a senha informada.
        """
        try:
            profile = AuthService.create_profile(db, email, password, name)
        except AlreadyRegistered:
            return AuthService.sign_in(db, email, password)
        return UserSession.from_profile(profile)

    @staticmethod
    def reload(db: Session, user: UserSession) -> Optional[UserSession]:
        """Relê o perfil no banco (ex.: após um admin aprovar o acesso)."""
        profile = db.get(Profile, user.profile_id)
        return UserSession.from_profile(profile) if profile else None

    # ----- Session / estado -----

    @staticmethod
    def init_session_state() -> None:
        if "user_session" not in st.session_state:
            st.session_state.user_session = None

    @staticmethod
    def login(user: UserSession) -> None:
        st.session_state.user_session = user

    @staticmethod
    def logout() -> None:
        st.session_state.user_session = None
        st.session_state.pop("cart_items", None)

    @staticmethod
    def is_authenticated() -> bool:
        return st.session_state.get("user_session") is not None

    @staticmethod
    def current_session() -> Optional[UserSession]:
        return st.session_state.get("user_session")

    # ----- Requisitos de acesso -----

    @staticmethod
    def require_auth() -> UserSession:
        """
        Garante que o usuário esteja autenticado.
        Se não estiver, mostra mensagem e interrompe a execução da página.
        """
        AuthService.init_session_state()
        user = AuthService.current_session()
        if user is None:
            st.warning("Você precisa fazer login para acessar esta página.")
            st.stop()
        return user

    @staticmethod
    def require_capability(capability: Capability) -> UserSession:
        """
        Garante que o perfil do usuário tenha a permissão exigida pela tela.
        """
        user = AuthService.require_auth()
        if not user.can(capability):
            st.error("Você não tem permissão para acessar esta funcionalidade.")
            st.stop()
        return user


def ensure_first_admin(db: Session) -> None:
    """
    Se não houver nenhum admin, promove o cadastro mais antigo.
    Executado na inicialização da aplicação.
    """
    if db.query(Profile).filter(Profile.role == Role.ADMIN.value).first():
        return
    first = db.query(Profile).order_by(Profile.created_at).first()
    if first:
        first.role = Role.ADMIN.value
        db.commit()
        logger.info("Perfil %s promovido a admin (nenhum admin cadastrado)", first.email)
