"""
Integration API tables: api_clients, api_keys
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey
from sqlalchemy.dialects.postgresql import UUID, ARRAY
from app.core.database import Base
from app.models.catalog import AuditMixin, unique_among_live_rows


class ApiClient(AuditMixin, Base):
    __tablename__ = "api_clients"
    __table_args__ = (unique_among_live_rows("api_clients", "name"),)

    id = Column(UUID(as_uuid=True), primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    contact_email = Column(String(255))
    contact_phone = Column(String(50))
    is_active = Column(Boolean, default=True, nullable=False)


class ApiKey(AuditMixin, Base):
    __tablename__ = "api_keys"

    id = Column(UUID(as_uuid=True), primary_key=True)
    api_client_id = Column(UUID(as_uuid=True), ForeignKey("api_clients.id"), nullable=False, index=True)
    key_hash = Column(String(64), nullable=False, unique=True)
    key_prefix = Column(String(16), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    expires_at = Column(DateTime(timezone=True))
    last_used_at = Column(DateTime(timezone=True))
    last_used_ip = Column(String(64))
    rate_limit_per_minute = Column(Integer, nullable=False, default=500)
    is_active = Column(Boolean, default=True, nullable=False)
    revoked_at = Column(DateTime(timezone=True))
    revoked_by = Column(String(255))
    revocation_reason = Column(Text)
    permissions = Column(ARRAY(String(50)), nullable=False, server_default="{}")
    ip_whitelist = Column(ARRAY(String(64)), nullable=False, server_default="{}")
