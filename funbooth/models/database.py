from sqlalchemy import Column, Float, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class BlobRow(Base):
    __tablename__ = "blob"

    storage_id = Column(String, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    content_type = Column(String, nullable=False)
    path = Column(String, nullable=False)
    size = Column(Integer, nullable=False)


class PhotoRow(Base):
    __tablename__ = "photo"

    # Insertion order breaks ties between records created in the same instant
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String, unique=True, nullable=False)
    owner_id = Column(String, nullable=False, index=True)
    storage_id = Column(String, ForeignKey("blob.storage_id"), nullable=False)
    filename = Column(String, nullable=False)
    filter = Column(String)
    frame_id = Column(String)
    overlays = Column(JSON)  # list of {type, x, y, scale, rotation}
    created_at = Column(Float, nullable=False)
