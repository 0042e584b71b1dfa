# data_layer.py
# ==============================================================================
# Data Layer — per-user storage for uploads, sales rows, insights and
# coordination logs. Every read and write is filtered by user_id.
# ==============================================================================

import logging
from datetime import datetime, timezone

import pandas as pd
from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import config
from models import (
    AgentMessageRecord, Base, CoordinationSession, Insight, SalesRecord, Upload
)

logger = logging.getLogger(__name__)

SALES_COLUMNS = ['product_name', 'sale_date', 'quantity_sold', 'unit_price',
                 'current_stock', 'reorder_point']


def _make_engine(database_url):
    if database_url.startswith('sqlite'):
        kwargs = {'connect_args': {'check_same_thread': False}}
        if database_url in ('sqlite://', 'sqlite:///:memory:'):
            # one shared connection so the in-memory db survives across sessions
            kwargs['poolclass'] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url)


class DataLayer:
    """Storage gateway for the dashboard, the API and the CLI.

    Supports:
    - Uploads and their sales rows (cascade delete)
    - Insight sets, replaced atomically per user
    - Coordination sessions and the agent messages they produced
    """

    def __init__(self, database_url=None):
        self.database_url = database_url or config.database_url()
        self.engine = _make_engine(self.database_url)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)
        Base.metadata.create_all(self.engine)
        logger.info("Data layer ready (%s)", self.engine.url.render_as_string(hide_password=True))

    # =========================================================================
    # Uploads & sales rows
    # =========================================================================

    def create_upload(self, user_id, file_name, row_count):
        with self.Session.begin() as session:
            upload = Upload(user_id=user_id, file_name=file_name, row_count=row_count)
            session.add(upload)
            session.flush()
            return upload.to_dict()

    def insert_sales_batch(self, user_id, upload_id, rows):
        """Insert one batch of normalised sales rows in its own transaction."""
        with self.Session.begin() as session:
            session.add_all([
                SalesRecord(
                    user_id=user_id,
                    upload_id=upload_id,
                    product_name=r['product_name'],
                    sale_date=r['sale_date'],
                    quantity_sold=r['quantity_sold'],
                    unit_price=r['unit_price'],
                    current_stock=r['current_stock'],
                    reorder_point=r['reorder_point'],
                    line_no=r.get('line_no', 0),
                )
                for r in rows
            ])
        return len(rows)

    def get_sales(self, user_id):
        """All of a user's sales rows, oldest sale first."""
        stmt = (
            select(SalesRecord)
            .join(Upload, SalesRecord.upload_id == Upload.id)
            .where(SalesRecord.user_id == user_id)
            .order_by(SalesRecord.sale_date, Upload.created_at, SalesRecord.line_no)
        )
        with self.Session() as session:
            return [r.to_dict() for r in session.scalars(stmt)]

    def sales_dataframe(self, user_id):
        """Same rows as get_sales(), as a DataFrame (empty frame keeps columns)."""
        rows = self.get_sales(user_id)
        if not rows:
            return pd.DataFrame(columns=SALES_COLUMNS)
        return pd.DataFrame(rows)

    def latest_upload(self, user_id):
        stmt = (
            select(Upload)
            .where(Upload.user_id == user_id)
            .order_by(Upload.created_at.desc())
            .limit(1)
        )
        with self.Session() as session:
            upload = session.scalars(stmt).first()
            return upload.to_dict() if upload else None

    def list_uploads(self, user_id):
        stmt = (
            select(Upload)
            .where(Upload.user_id == user_id)
            .order_by(Upload.created_at.desc())
        )
        with self.Session() as session:
            return [u.to_dict() for u in session.scalars(stmt)]

    def delete_upload(self, user_id, upload_id):
        """Delete an upload and its sales rows. Returns False if not the user's."""
        with self.Session.begin() as session:
            upload = session.get(Upload, upload_id)
            if upload is None or upload.user_id != user_id:
                return False
            session.delete(upload)
        logger.info("Deleted upload %s for user %s", upload_id, user_id)
        return True

    # =========================================================================
    # Insights
    # =========================================================================

    def replace_insights(self, user_id, upload_id, insights):
        """Swap the user's insight set for a new one in a single transaction."""
        with self.Session.begin() as session:
            session.execute(delete(Insight).where(Insight.user_id == user_id))
            session.add_all([
                Insight(
                    user_id=user_id,
                    upload_id=upload_id,
                    product_name=i['product_name'],
                    status=i['status'],
                    risk_level=i['risk_level'],
                    recommendation=i['recommendation'],
                    explanation=i['explanation'],
                    recommended_order_qty=i.get('recommended_order_qty'),
                    forecast_next_30=i.get('forecast_next_30') or None,
                )
                for i in insights
            ])
        return len(insights)

    def get_insights(self, user_id):
        stmt = (
            select(Insight)
            .where(Insight.user_id == user_id)
            .order_by(Insight.created_at.desc())
        )
        with self.Session() as session:
            return [i.to_dict() for i in session.scalars(stmt)]

    # =========================================================================
    # Coordination sessions
    # =========================================================================

    def create_session(self, user_id, trigger_type='demand_signal'):
        with self.Session.begin() as session:
            row = CoordinationSession(user_id=user_id, trigger_type=trigger_type,
                                      status='running')
            session.add(row)
            session.flush()
            return row.to_dict()

    def complete_session(self, user_id, session_id, report):
        with self.Session.begin() as session:
            row = session.get(CoordinationSession, session_id)
            if row is None or row.user_id != user_id:
                return None
            row.status = 'completed'
            row.report = report
            row.completed_at = datetime.now(timezone.utc)
            return row.to_dict()

    def insert_messages(self, user_id, session_id, messages):
        """Bulk-insert the message rows of one session."""
        with self.Session.begin() as session:
            session.add_all([
                AgentMessageRecord(
                    session_id=session_id,
                    user_id=user_id,
                    position=pos,
                    from_agent=m['from_agent'],
                    to_agent=m['to_agent'],
                    message_type=m['message_type'],
                    content=m.get('content'),
                    timestamp_offset_ms=m.get('timestamp_offset_ms'),
                )
                for pos, m in enumerate(messages)
            ])
        return len(messages)

    def list_sessions(self, user_id, limit=20):
        stmt = (
            select(CoordinationSession)
            .where(CoordinationSession.user_id == user_id)
            .order_by(CoordinationSession.created_at.desc())
            .limit(limit)
        )
        with self.Session() as session:
            return [s.to_dict() for s in session.scalars(stmt)]

    def get_session(self, user_id, session_id):
        with self.Session() as session:
            row = session.get(CoordinationSession, session_id)
            if row is None or row.user_id != user_id:
                return None
            return row.to_dict()

    def get_session_messages(self, user_id, session_id):
        stmt = (
            select(AgentMessageRecord)
            .where(AgentMessageRecord.user_id == user_id,
                   AgentMessageRecord.session_id == session_id)
            .order_by(AgentMessageRecord.position)
        )
        with self.Session() as session:
            return [m.to_dict() for m in session.scalars(stmt)]
