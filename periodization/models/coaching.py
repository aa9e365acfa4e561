from datetime import datetime

from sqlalchemy import Column, DateTime, Enum as SAEnum, Index, Integer

from periodization.db.database import Base
from periodization.models.enums import RelationshipStatus


class TrainerClient(Base):
    """Trainer to athlete coaching relationship, maintained by the coaching app."""
    __tablename__ = "trainer_clients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trainer_id = Column(Integer, nullable=False)
    client_id = Column(Integer, nullable=False)
    status = Column(
        SAEnum(RelationshipStatus, name="relationship_status"),
        nullable=False,
        default=RelationshipStatus.PENDING,
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_trainer_clients_trainer_client", "trainer_id", "client_id"),
    )
