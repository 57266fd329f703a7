from __future__ import annotations

from datetime import date

import pytest

from masjid import create_app, db
from masjid.models import Member

PRAYER_DAY = date(2024, 3, 1)


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'ADMIN_EMAILS': [],
        'AUTO_INIT_DB': False,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


def add_member(name: str, identity: str | None, *, email: str | None = None,
               is_admin: bool = False, is_active: bool = True) -> Member:
    member = Member(
        name=name,
        email=email,
        linked_identity_id=identity,
        is_admin=is_admin,
        is_active=is_active,
    )
    db.session.add(member)
    db.session.commit()
    return member


@pytest.fixture
def owner(ctx):
    return add_member('Abdullah', 'id-owner', email='abdullah@example.org')


@pytest.fixture
def other(ctx):
    return add_member('Bilal', 'id-other', email='bilal@example.org')


@pytest.fixture
def admin(ctx):
    return add_member('Zaid', 'id-admin', email='zaid@example.org', is_admin=True)
