"""Product ORM Model (stock counters only; the catalog service owns the rest)"""

from sqlalchemy import Column, DateTime, Integer, String, Uuid
from sqlalchemy.sql import func
from uuid import uuid4

from ...db.models import Base


class ProductModel(Base):
    __tablename__ = 'products'

    id = Column(Uuid, primary_key=True, default=uuid4, index=True)
    title = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    sold = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
