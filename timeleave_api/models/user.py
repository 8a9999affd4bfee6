from timeleave_api.common.clock import utcnow
from timeleave_api.extensions import db


class User(db.Model):
    """Acting identity. Credentials live with the identity provider."""
    __tablename__ = "users"

    id         = db.Column(db.Integer, primary_key=True)
    email      = db.Column(db.String(255), unique=True, index=True, nullable=False)
    full_name  = db.Column(db.String(255), nullable=False)
    status     = db.Column(db.String(20), default="active")
    created_at = db.Column(db.DateTime, default=utcnow)
