from sqlalchemy import Column, Integer, String, Text, ForeignKey, TIMESTAMP, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from facility_api.database import Base


class AuditLog(Base):
    """One history line of a maintenance request (see utils/audit.py for actions)."""
    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_logs_entity", "entityType", "entityId"),)

    id          = Column(Integer, primary_key=True, index=True)
    userId      = Column(Integer, ForeignKey("users.id"), nullable=True)
    action      = Column(String(50), nullable=False)
    entityType  = Column(String(100), nullable=False, default="MaintenanceRequest")
    entityId    = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    createdAt   = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="audit_logs")

    def __repr__(self):
        return f"<AuditLog #{self.id} {self.action} {self.entityType}:{self.entityId} by={self.userId}>"
