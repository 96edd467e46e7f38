"""Shared fixtures: an app bound to a throwaway SQLite file per test."""
import pytest

from rentledger_backend import create_app, db
from rentledger_backend.config import TestingConfig
from rentledger_backend.services import tenancies, units


@pytest.fixture
def app(tmp_path):
    class _Config(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'ledger.db'}"

    app = create_app(_Config)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_unit(app):
    def _make(number="F101", notes=""):
        return units.create_unit(number, notes)
    return _make


@pytest.fixture
def assign(app):
    def _assign(unit, name, start_date, rent_amount=10000, **extra):
        data = {"name": name, "startDate": start_date, "rentAmount": rent_amount}
        data.update(extra)
        return tenancies.assign_tenant(unit.id, data)
    return _assign
