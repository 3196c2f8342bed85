from datetime import datetime
from barpay_api.extensions import db

SINGLETON_ID = 1

class SalaryFormula(db.Model):
    __tablename__ = "salary_formulas"

    id = db.Column(db.Integer, primary_key=True, default=SINGLETON_ID)
    shift_rate       = db.Column(db.Numeric, nullable=False, default=1000)
    internship_rate  = db.Column(db.Numeric, nullable=False, default=1000)
    total_bar_amount = db.Column(db.Numeric, nullable=False, default=100000)
    bar_percentage   = db.Column(db.Numeric, nullable=False, default=0.07)  # fraction, 0.07 == 7%

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
