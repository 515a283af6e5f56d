"""AddressChangeLog model - audit trail of address edits.

The table is owned by the address-management part of the back office. This
service only reads it to decide whether a cached distance is stale.
"""

from __future__ import annotations

from sqlalchemy import JSON, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from freight_distance.models.base import Base, CreatedAtMixin, UUIDPrimaryKeyMixin


class AddressChangeLog(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    """One edit of an address record (append-only).

    Attributes:
        address_id: Identifier of the edited address
        change_type: Kind of edit (e.g., "update", "delete")
        changes: Field-level diff of the edit
        changed_by: Identifier of the user who made the edit
        reason: Optional free-text reason
    """

    __tablename__ = "address_change_logs"

    address_id: Mapped[str] = mapped_column(String(64), nullable=False)
    change_type: Mapped[str] = mapped_column(String(20), nullable=False, default="update")
    changes: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    changed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_address_change_logs_address_created", "address_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<AddressChangeLog(address_id='{self.address_id}', "
            f"change_type='{self.change_type}', created_at={self.created_at})>"
        )
