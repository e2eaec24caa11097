"""Persisted tracker state, kept across sessions."""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from findingsync.database import Base


class TrackedFile(Base):
    """A file that has been analyzed at least once in a project.

    Distinguishes "never analyzed" from "analyzed, no issues".
    """

    __tablename__ = "tracked_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    resource: Mapped[str] = mapped_column(String(1000), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    issues: Mapped[list["TrackedIssue"]] = relationship(
        "TrackedIssue",
        back_populates="tracked_file",
        cascade="all, delete-orphan",
        order_by="TrackedIssue.position",
    )


class TrackedIssue(Base):
    """One tracked annotation as last reconciled."""

    __tablename__ = "tracked_issues"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tracked_file_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tracked_files.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, default=0)

    # Identity
    uuid: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(DateTime)  # naive UTC

    # Classification
    rule_key: Mapped[str] = mapped_column(String(255), nullable=False)
    severity: Mapped[str | None] = mapped_column(String(20))
    message: Mapped[str] = mapped_column(Text, default="")

    # Location
    line: Mapped[int | None] = mapped_column(Integer)
    char_start: Mapped[int | None] = mapped_column(Integer)
    char_end: Mapped[int | None] = mapped_column(Integer)
    checksum: Mapped[int | None] = mapped_column(BigInteger)

    flows: Mapped[str] = mapped_column(Text, default="")
    impacts: Mapped[str] = mapped_column(Text, default="")

    server_issue_key: Mapped[str | None] = mapped_column(String(255))
    marker_id: Mapped[int | None] = mapped_column(Integer)
    resolved: Mapped[bool] = mapped_column(Boolean, default=False)

    tracked_file: Mapped["TrackedFile"] = relationship("TrackedFile", back_populates="issues")
