import enum
from sqlalchemy import Column, Integer, String, Boolean, Enum, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from facility_api.database import Base


class RoleName(str, enum.Enum):
    ADMIN      = "admin"
    MANAGER    = "manager"
    SUPERVISOR = "supervisor"
    STAFF      = "staff"


class User(Base):
    __tablename__ = "users"

    id        = Column(Integer, primary_key=True, index=True)
    name      = Column(String(150), nullable=False)
    email     = Column(String(255), unique=True, nullable=False, index=True)
    role      = Column(Enum(RoleName), default=RoleName.STAFF, nullable=False, index=True)
    isActive  = Column(Boolean, default=True, nullable=False)
    createdAt = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updatedAt = Column(TIMESTAMP(timezone=True), server_default=func.now(),
                       onupdate=func.now(), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    requests   = relationship("MaintenanceRequest", foreign_keys="MaintenanceRequest.requestedBy",
                              back_populates="requester")
    assignments = relationship("MaintenanceRequest", foreign_keys="MaintenanceRequest.assignedTo",
                               back_populates="technician")
    audit_logs = relationship("AuditLog", back_populates="user")

    def __repr__(self):
        return f"<User id={self.id} email={self.email} role={self.role}>"
