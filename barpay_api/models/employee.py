from datetime import datetime
from barpay_api.extensions import db

class Employee(db.Model):
    __tablename__ = "employees"

    id   = db.Column(db.String(64), primary_key=True)   # client-visible stable id
    name = db.Column(db.String(255), nullable=False)

    shifts            = db.Column(db.Numeric, nullable=False, default=0)  # total, includes internship shifts
    internship_shifts = db.Column(db.Numeric, nullable=False, default=0)
    corkage_fee       = db.Column(db.Numeric, nullable=False, default=0)
    penalties         = db.Column(db.Numeric, nullable=False, default=0)
    bar_debt          = db.Column(db.Numeric, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
