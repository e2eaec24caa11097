"""Annotation model - the host's visible annotations, one row per marker."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from findingsync.database import Base


class Annotation(Base):
    """Visible annotation on a workspace file.

    Categories:
    - findingsync.on_the_fly: results of editor-triggered analysis
    - findingsync.report: results of a manual, project-wide report
    - findingsync.taint: taint vulnerabilities fetched from the server
    """

    __tablename__ = "annotations"
    __table_args__ = (Index("ix_annotations_resource_category", "resource", "category"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    resource: Mapped[str] = mapped_column(String(1000), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)

    # Identity of the tracked annotation shown by this row
    tracked_id: Mapped[str | None] = mapped_column(String(36))

    # Classification
    rule_key: Mapped[str] = mapped_column(String(255), nullable=False)
    severity: Mapped[str | None] = mapped_column(String(20))
    priority: Mapped[int] = mapped_column(Integer, default=0)
    message: Mapped[str] = mapped_column(Text, default="")

    # Location
    line_number: Mapped[int] = mapped_column(Integer, default=1)
    char_start: Mapped[int | None] = mapped_column(Integer)
    char_end: Mapped[int | None] = mapped_column(Integer)
    checksum: Mapped[int | None] = mapped_column(BigInteger)

    # Encoded scalars (see services.flow_codec)
    flows: Mapped[str] = mapped_column(Text, default="")
    impacts: Mapped[str] = mapped_column(Text, default="")

    # Server state
    server_issue_key: Mapped[str | None] = mapped_column(String(255))
    creation_date: Mapped[str | None] = mapped_column(String(20))
    # Epoch millis as a string, the way the host stores scalar attributes

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )
