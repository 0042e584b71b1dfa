# models.py
# ==============================================================================
# Storage schema — uploads, sales rows, insights, coordination sessions and
# agent messages. Every table carries user_id; rows never cross users.
# ==============================================================================

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Date, DateTime, Float, ForeignKey, Integer, JSON, String, Text
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _uuid():
    return str(uuid.uuid4())


def _now():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value is not None else None


class Upload(Base):
    __tablename__ = 'uploads'

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    row_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    sales_records = relationship(
        'SalesRecord', back_populates='upload',
        cascade='all, delete-orphan')
    insights = relationship('Insight', back_populates='upload')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'file_name': self.file_name,
            'row_count': self.row_count,
            'created_at': _iso(self.created_at),
        }


class SalesRecord(Base):
    __tablename__ = 'sales_data'

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    upload_id = Column(String(36), ForeignKey('uploads.id', ondelete='CASCADE'),
                       nullable=False, index=True)
    product_name = Column(String(255), nullable=False)
    sale_date = Column(Date, nullable=False)
    quantity_sold = Column(Float, nullable=False)
    unit_price = Column(Float, nullable=False)
    current_stock = Column(Float, nullable=False, default=0)
    reorder_point = Column(Float, nullable=False, default=0)
    line_no = Column(Integer, nullable=False, default=0)  # position in the CSV
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    upload = relationship('Upload', back_populates='sales_records')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'upload_id': self.upload_id,
            'product_name': self.product_name,
            'sale_date': _iso(self.sale_date),
            'quantity_sold': self.quantity_sold,
            'unit_price': self.unit_price,
            'current_stock': self.current_stock,
            'reorder_point': self.reorder_point,
        }


class Insight(Base):
    __tablename__ = 'ai_insights'

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    upload_id = Column(String(36), ForeignKey('uploads.id', ondelete='SET NULL'),
                       nullable=True)
    product_name = Column(String(255), nullable=False)
    status = Column(String(32), nullable=False)
    risk_level = Column(String(32), nullable=False)
    recommendation = Column(Text, nullable=False)
    explanation = Column(Text, nullable=False)
    recommended_order_qty = Column(Float, nullable=True)
    forecast_next_30 = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    upload = relationship('Upload', back_populates='insights')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'upload_id': self.upload_id,
            'product_name': self.product_name,
            'status': self.status,
            'risk_level': self.risk_level,
            'recommendation': self.recommendation,
            'explanation': self.explanation,
            'recommended_order_qty': self.recommended_order_qty,
            'forecast_next_30': self.forecast_next_30,
            'created_at': _iso(self.created_at),
        }


class CoordinationSession(Base):
    __tablename__ = 'coordination_sessions'

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    trigger_type = Column(String(64), nullable=False, default='demand_signal')
    status = Column(String(32), nullable=False, default='running')
    report = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    messages = relationship(
        'AgentMessageRecord', back_populates='session',
        cascade='all, delete-orphan',
        order_by='AgentMessageRecord.position')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'trigger_type': self.trigger_type,
            'status': self.status,
            'report': self.report,
            'created_at': _iso(self.created_at),
            'completed_at': _iso(self.completed_at),
        }


class AgentMessageRecord(Base):
    __tablename__ = 'agent_messages'

    id = Column(String(36), primary_key=True, default=_uuid)
    session_id = Column(String(36),
                        ForeignKey('coordination_sessions.id', ondelete='CASCADE'),
                        nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    from_agent = Column(String(64), nullable=False)
    to_agent = Column(String(64), nullable=False)
    message_type = Column(String(32), nullable=False)
    content = Column(JSON, nullable=True)
    timestamp_offset_ms = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    session = relationship('CoordinationSession', back_populates='messages')

    def to_dict(self):
        return {
            'id': self.id,
            'session_id': self.session_id,
            'from': self.from_agent,
            'to': self.to_agent,
            'type': self.message_type,
            'content': self.content,
            'timestamp_offset_ms': self.timestamp_offset_ms,
        }
