from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from facility_api.database import get_db
from facility_api.dependencies import get_current_actor, get_supervisor
from facility_api.schemas.common import success_response
from facility_api.services.user_service import user_service
from facility_api.utils.permissions import Actor

router = APIRouter(prefix="/users")


# GET /users/technicians: people a supervisor can assign work to
@router.get("/technicians", status_code=status.HTTP_200_OK, summary="List assignable technicians")
def list_technicians(db: Session = Depends(get_db), _: Actor = Depends(get_supervisor)):
    return success_response("Technicians retrieved", user_service.list_technicians(db))


# GET /users/me: any authenticated user
@router.get("/me", status_code=status.HTTP_200_OK, summary="Get the acting identity")
def get_me(actor: Actor = Depends(get_current_actor)):
    return success_response("Profile retrieved", {
        "id":           actor.id,
        "name":         actor.name,
        "role":         actor.role.value,
        "capabilities": sorted(c.value for c in actor.capabilities),
    })
