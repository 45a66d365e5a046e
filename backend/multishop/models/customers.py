from __future__ import annotations

from enum import Enum

from ..extensions import db
from ..time_utils import to_utc_z


class CustomerStatus(Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class Customer(db.Model):
    """
    Customer record owned by exactly one branch.

    branch_id is fixed at creation. Email is unique across all branches.
    Free-text columns hold HTML-escaped text (escaping happens before insert).
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_branch_id", "branch_id"),
        db.Index("ix_customers_branch_status", "branch_id", "status"),
        db.Index("ix_customers_registration_date", "registration_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False)

    full_name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    phone_number = db.Column(db.String(64), nullable=True)
    code = db.Column(db.String(64), nullable=True)
    address = db.Column(db.String(512), nullable=True)

    registration_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=CustomerStatus.ACTIVE.value)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    branch = db.relationship("Branch", backref=db.backref("customers", lazy=True))

    def __repr__(self) -> str:
        return f"<Customer id={self.id} email={self.email!r} branch_id={self.branch_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "branch_name": self.branch.name if self.branch else None,
            "full_name": self.full_name,
            "email": self.email,
            "phone_number": self.phone_number,
            "code": self.code,
            "address": self.address,
            "registration_date": self.registration_date.isoformat() if self.registration_date else None,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
