import enum
from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, TIMESTAMP, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from facility_api.database import Base


class MaintenanceStatus(str, enum.Enum):
    DRAFT       = "draft"
    PENDING     = "pending"
    APPROVED    = "approved"
    IN_PROGRESS = "in_progress"
    COMPLETED   = "completed"
    CANCELLED   = "cancelled"


class MaintenancePriority(str, enum.Enum):
    LOW    = "low"
    MEDIUM = "medium"
    HIGH   = "high"
    URGENT = "urgent"


TERMINAL_STATUSES = frozenset({MaintenanceStatus.COMPLETED, MaintenanceStatus.CANCELLED})


class MaintenanceRequest(Base):
    __tablename__ = "maintenance_requests"

    id                     = Column(Integer, primary_key=True, index=True)
    # Asset snapshot; drafts may be saved before an asset is picked
    assetId                = Column(Integer, ForeignKey("assets.id"), nullable=True)
    assetName              = Column(String(200), nullable=True)
    assetCode              = Column(String(50), nullable=True)
    requestedBy            = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    requestedByName        = Column(String(150), nullable=False)
    title                  = Column(String(255), nullable=False, default="")
    description            = Column(Text, nullable=False, default="")
    priority               = Column(Enum(MaintenancePriority), nullable=True)
    status                 = Column(Enum(MaintenanceStatus), default=MaintenanceStatus.DRAFT,
                                    nullable=False, index=True)
    isDraft                = Column(Boolean, default=True, nullable=False, index=True)
    assignedTo             = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    assignedToName         = Column(String(150), nullable=True)
    expectedCompletionTime = Column(TIMESTAMP(timezone=True), nullable=True)
    notes                  = Column(Text, nullable=True)
    completedAt            = Column(TIMESTAMP(timezone=True), nullable=True)
    createdAt              = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updatedAt              = Column(TIMESTAMP(timezone=True), server_default=func.now(),
                                    onupdate=func.now(), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    asset      = relationship("Asset", back_populates="maintenance_requests")
    requester  = relationship("User", foreign_keys=[requestedBy], back_populates="requests")
    technician = relationship("User", foreign_keys=[assignedTo], back_populates="assignments")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self):
        return f"<MaintenanceRequest id={self.id} status={self.status} assetId={self.assetId}>"
