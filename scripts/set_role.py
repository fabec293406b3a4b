"""
Define o perfil de um membro da equipe pela linha de comando.
Uso: python scripts/set_role.py email@exemplo.com admin|entregador|pending
"""
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from config.database import new_session
from models.profile import Profile
from services.permissions import Role
from services.team_service import TeamService


def main(argv: list[str]) -> int:
    if len(argv) != 2:
        print(__doc__)
        return 1
    email, role = argv[0].strip().lower(), argv[1]
    try:
        Role(role)
    except ValueError:
        print(f"Perfil inválido: {role}. Use: {', '.join(r.value for r in Role)}")
        return 1

    db = new_session()
    try:
        perfil = db.query(Profile).filter(Profile.email == email).first()
        if perfil is None:
            print(f"Nenhum cadastro com o e-mail {email}.")
            return 1
        TeamService(db).update_role(perfil.id, role)
        print(f"✅ {email} agora é {Role(role).label}.")
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
