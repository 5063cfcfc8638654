from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class RecordRow(Base):
    __tablename__ = "records"
    
    kind = Column(String(32), primary_key=True)  # detection, pack, schema
    record_id = Column(String(255), primary_key=True)
    lower_id = Column(String(255), nullable=False)
    
    managed = Column(Boolean, nullable=False, default=True)
    revision = Column(Integer, nullable=False, default=1)
    data = Column(Text, nullable=False)  # JSON document
    
    created_by = Column(String(255))
    last_modified_by = Column(String(255))
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    
    __table_args__ = (
        Index("ix_records_kind_lower_id", "kind", "lower_id"),
    )
