from __future__ import annotations

from sqlalchemy.orm import declared_attr

from ..extensions import db
from ..time_utils import to_utc_z
from .states import SubmissionStatus


class SubmissionMixin:
    """
    Approval columns shared by every submission (sales, expenses, production
    logs, stock counts).

    status only moves Pending -> Approved or Pending -> Rejected (see
    SubmissionStatus.TRANSITIONS). version_id is the optimistic lock that
    turns a racing second approval into a StaleDataError.
    """
    status = db.Column(db.String(16), nullable=False, default=SubmissionStatus.PENDING, index=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    approved_by_user_id = db.Column(db.Integer, nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejection_reason = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @declared_attr
    def __mapper_args__(cls):
        return {"version_id_col": cls.version_id}

    def submission_dict(self) -> dict:
        return {
            "status": self.status,
            "createdByUserId": self.created_by_user_id,
            "approvedByUserId": self.approved_by_user_id,
            "approvedAt": to_utc_z(self.approved_at),
            "rejectionReason": self.rejection_reason,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
