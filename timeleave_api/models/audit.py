from timeleave_api.common.clock import utcnow
from timeleave_api.extensions import db


class AuditLog(db.Model):
    __tablename__ = "audit_logs"
    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=True, index=True)
    table_name = db.Column(db.String(64), nullable=False)
    record_id = db.Column(db.String(64), nullable=False)
    action = db.Column(db.String(16), nullable=False)    # CREATE|UPDATE
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reason = db.Column(db.String(64), nullable=True)
    changes = db.Column(db.JSON, nullable=False, default=list)  # [{field, old, new}]
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.Index("ix_audit_table_record", "table_name", "record_id"),
    )
