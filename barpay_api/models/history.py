import uuid
from datetime import datetime
from barpay_api.extensions import db


def _uuid() -> str:
    return str(uuid.uuid4())


class PayrollHistory(db.Model):
    """One row per (period, employee) at the moment the payroll was saved.

    Append-only: rows are never updated, only removed as a whole period.
    """
    __tablename__ = "payroll_history"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    period_start = db.Column(db.Date, nullable=False)
    period_end   = db.Column(db.Date, nullable=False)

    employee_id   = db.Column(db.String(64), nullable=False)   # no FK: the roster may change later
    employee_name = db.Column(db.String(255), nullable=False)

    shifts            = db.Column(db.Numeric, nullable=False, default=0)
    internship_shifts = db.Column(db.Numeric, nullable=False, default=0)
    corkage_fee       = db.Column(db.Numeric, nullable=False, default=0)
    penalties         = db.Column(db.Numeric, nullable=False, default=0)
    bar_debt          = db.Column(db.Numeric, nullable=False, default=0)
    total_salary      = db.Column(db.Numeric, nullable=False, default=0)

    total_bar_amount = db.Column(db.Numeric, nullable=False, default=100000)
    bar_percentage   = db.Column(db.Numeric, nullable=False, default=0.07)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.Index("idx_payroll_history_period", "period_start", "period_end"),
        db.Index("idx_payroll_history_employee", "employee_id", "employee_name"),
        db.Index("idx_payroll_history_created_at", "created_at"),
    )
