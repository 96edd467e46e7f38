from datetime import datetime

from rentledger_backend.extensions import db


class Tenancy(db.Model):
    __tablename__ = 'tenancies'

    id = db.Column(db.Integer, primary_key=True)
    unit_id = db.Column(db.Integer, db.ForeignKey('units.id'), nullable=False, index=True)

    # Occupant
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(50), nullable=False, default='')
    id_number = db.Column(db.String(50), nullable=False, default='')

    # Occupancy interval; end_date is NULL while ongoing
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True)

    # Financial terms
    rent_amount = db.Column(db.Numeric(10, 2), nullable=False)
    deposit = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    active = db.Column(db.Boolean, nullable=False, default=True)

    # Metadata
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    unit = db.relationship('Unit', foreign_keys=[unit_id], back_populates='tenancies')

    # At most one active tenancy per unit
    __table_args__ = (
        db.Index(
            'uq_tenancies_active_unit', 'unit_id', unique=True,
            sqlite_where=db.text('active'), postgresql_where=db.text('active'),
        ),
    )

    def __repr__(self):
        state = 'active' if self.active else 'inactive'
        return f'<Tenancy {self.id}: {self.name} in Unit {self.unit_id} ({state})>'

    def summary(self):
        """Occupant fields shown next to a unit."""
        return {
            'id': self.id,
            'name': self.name,
            'phone': self.phone,
            'idNumber': self.id_number,
            'startDate': self.start_date.isoformat() if self.start_date else None,
            'endDate': self.end_date.isoformat() if self.end_date else None,
            'rentAmount': float(self.rent_amount) if self.rent_amount is not None else None,
            'deposit': float(self.deposit) if self.deposit is not None else 0.0,
            'active': self.active,
        }

    def serialize(self, include_unit=True):
        data = self.summary()
        data['unitId'] = self.unit_id
        data['createdAt'] = self.created_at.isoformat() if self.created_at else None
        data['updatedAt'] = self.updated_at.isoformat() if self.updated_at else None
        if include_unit:
            data['unit'] = self.unit.summary() if self.unit else None
        return data

    def deactivate(self, end_date):
        """Close the occupancy interval. Inactive is terminal."""
        self.active = False
        self.end_date = end_date
        if self.unit and self.unit.current_tenancy_id == self.id:
            self.unit.current_tenancy = None
