"""Store model.

A published store listing. Location is stored as two float columns and
exposed as a GeoJSON-style point by the repository.
"""

from datetime import datetime
import uuid

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import Mapped, mapped_column

from storefinder.stores.postgres import Base


class StoreRecord(Base):
    """Store listing row."""

    __tablename__ = "stores"
    __table_args__ = (
        Index("ix_stores_tags", "tags", postgresql_using="gin"),
        Index("ix_stores_lng_lat", "longitude", "latitude"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(200))
    slug: Mapped[str] = mapped_column(String(250), unique=True, index=True)
    description: Mapped[str] = mapped_column(Text, default="")
    tags: Mapped[list[str]] = mapped_column(ARRAY(String(100)), default=list)

    # Location (WGS84)
    longitude: Mapped[float | None] = mapped_column(Float)
    latitude: Mapped[float | None] = mapped_column(Float)
    address: Mapped[str | None] = mapped_column(String(500))

    # Stored upload filename (None -> default photo)
    photo: Mapped[str | None] = mapped_column(String(200))

    author_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Store {self.slug}>"
