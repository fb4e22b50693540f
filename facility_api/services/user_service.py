from sqlalchemy.orm import Session

from facility_api.models.user import User
from facility_api.utils.permissions import technician_roles


def _serialize_technician(u: User) -> dict:
    return {
        "id":   u.id,
        "name": u.name,
        "role": u.role.value,
    }


class UserService:

    # ─── Technicians ──────────────────────────────────────────────────────────
    def list_technicians(self, db: Session) -> list[dict]:
        """Active users whose role makes them eligible for maintenance assignments."""
        users = db.query(User).filter(
            User.role.in_(technician_roles()),
            User.isActive == True,  # noqa: E712
        ).order_by(User.name.asc()).all()
        return [_serialize_technician(u) for u in users]


user_service = UserService()
