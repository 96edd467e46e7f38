from datetime import datetime

from rentledger_backend.extensions import db


class RentObligation(db.Model):
    __tablename__ = 'rent_obligations'

    id = db.Column(db.Integer, primary_key=True)

    # Foreign Keys
    unit_id = db.Column(db.Integer, db.ForeignKey('units.id'), nullable=False, index=True)
    tenancy_id = db.Column(db.Integer, db.ForeignKey('tenancies.id'), nullable=False, index=True)

    period = db.Column(db.String(7), nullable=False, index=True)  # YYYY-MM

    # Financial details; amount is a snapshot of the rent at creation time
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    maintenance_fee = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    # Status tracking
    paid = db.Column(db.Boolean, nullable=False, default=False)
    paid_on = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=False, default='')

    # Metadata
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    unit = db.relationship('Unit')
    tenancy = db.relationship('Tenancy')

    __table_args__ = (
        db.UniqueConstraint('unit_id', 'tenancy_id', 'period', name='uq_rent_obligations_unit_tenancy_period'),
    )

    def __repr__(self):
        return f'<RentObligation {self.id}: Unit {self.unit_id}, Tenancy {self.tenancy_id}, {self.period}>'

    def serialize(self):
        return {
            'id': self.id,
            'unitId': self.unit_id,
            'tenancyId': self.tenancy_id,
            'period': self.period,
            'amount': float(self.amount),
            'maintenanceFee': float(self.maintenance_fee or 0),
            'paid': self.paid,
            'paidOn': self.paid_on.isoformat() if self.paid_on else None,
            'notes': self.notes,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
            'unit': self.unit.summary() if self.unit else None,
            'tenancy': self.tenancy.summary() if self.tenancy else None,
        }
