"""
Document Model (Persistence)
One row per document; collection paths include sub-collections
"""
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.dialects.postgresql import JSONB

from core.database import Base


class DocumentModel(Base):
    __tablename__ = "documents"

    # Primary Key
    collection = Column(String(512), primary_key=True)
    id = Column(String(255), primary_key=True)

    # Contents
    data = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict)

    # Timestamps
    create_time = Column(DateTime(timezone=True), nullable=False)
    update_time = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<DocumentModel {self.collection}/{self.id}>"
