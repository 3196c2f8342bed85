from datetime import datetime
from barpay_api.extensions import db

class PayrollPeriod(db.Model):
    __tablename__ = "payroll_periods"

    id = db.Column(db.Integer, primary_key=True, default=1)
    start_date = db.Column(db.Date, nullable=False)
    end_date   = db.Column(db.Date, nullable=False)
    # formula snapshot at the time the period was last saved
    total_bar_amount = db.Column(db.Numeric, nullable=False, default=100000)
    bar_percentage   = db.Column(db.Numeric, nullable=False, default=0.07)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
