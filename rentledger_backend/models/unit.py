from datetime import datetime

from rentledger_backend.extensions import db


class Unit(db.Model):
    __tablename__ = 'units'

    id = db.Column(db.Integer, primary_key=True)
    number = db.Column(db.String(50), unique=True, nullable=False)
    notes = db.Column(db.Text, nullable=False, default='')

    # Weak back-reference to the active tenancy; Tenancy.unit_id owns the relationship
    current_tenancy_id = db.Column(
        db.Integer,
        db.ForeignKey('tenancies.id', use_alter=True, name='fk_units_current_tenancy_id', ondelete='SET NULL'),
        nullable=True,
    )

    # Metadata
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    current_tenancy = db.relationship('Tenancy', foreign_keys=[current_tenancy_id], post_update=True)
    tenancies = db.relationship(
        'Tenancy', foreign_keys='Tenancy.unit_id', back_populates='unit', lazy='dynamic'
    )

    def __repr__(self):
        return f'<Unit {self.id}: {self.number}>'

    def summary(self):
        return {
            'id': self.id,
            'number': self.number,
            'notes': self.notes,
        }

    def serialize(self):
        occupant = self.current_tenancy
        return {
            'id': self.id,
            'number': self.number,
            'notes': self.notes,
            'currentTenancyId': self.current_tenancy_id,
            'currentTenancy': occupant.summary() if occupant else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
