import enum
from sqlalchemy import Column, Integer, String, Enum, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from facility_api.database import Base


class AssetStatus(str, enum.Enum):
    AVAILABLE   = "available"
    IN_USE      = "in_use"
    MAINTENANCE = "maintenance"
    BROKEN      = "broken"


class Asset(Base):
    __tablename__ = "assets"

    id        = Column(Integer, primary_key=True, index=True)
    name      = Column(String(200), nullable=False)
    code      = Column(String(50), unique=True, nullable=False, index=True)
    category  = Column(String(100), nullable=True)
    location  = Column(String(200), nullable=True)
    status    = Column(Enum(AssetStatus), default=AssetStatus.AVAILABLE, nullable=False)
    createdAt = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updatedAt = Column(TIMESTAMP(timezone=True), server_default=func.now(),
                       onupdate=func.now(), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    maintenance_requests = relationship("MaintenanceRequest", back_populates="asset")

    def __repr__(self):
        return f"<Asset id={self.id} code={self.code} status={self.status}>"
