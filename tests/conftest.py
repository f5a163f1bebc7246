"""Shared pytest fixtures for sportbook tests."""
from datetime import time, timedelta
from decimal import Decimal

import pytest
from django.contrib.auth.models import User
from django.utils import timezone

from booking.models import Facility, Match, MatchParticipant, SkillLevel, Sport


@pytest.fixture
def user(db):
    return User.objects.create_user(
        username="rahul", email="rahul@example.com", password="pass12345", first_name="Rahul Sharma"
    )


@pytest.fixture
def other_user(db):
    return User.objects.create_user(
        username="priya", email="priya@example.com", password="pass12345", first_name="Priya Singh"
    )


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(
        username="admin", email="admin@example.com", password="pass12345", is_staff=True
    )


@pytest.fixture
def make_users(db):
    def _make(n, prefix="player"):
        return [
            User.objects.create_user(username=f"{prefix}{i}", password="pass12345")
            for i in range(n)
        ]
    return _make


@pytest.fixture
def future_date():
    """A date one week from today."""
    return timezone.localdate() + timedelta(days=7)


@pytest.fixture
def make_facility(db):
    def _make(**kwargs):
        defaults = dict(
            name="Elite Badminton Center",
            location="Koramangala, Bangalore",
            address="80 Feet Road, Koramangala",
            sport=Sport.BADMINTON,
            price_per_hour=Decimal("800.00"),
        )
        defaults.update(kwargs)
        return Facility.objects.create(**defaults)
    return _make


@pytest.fixture
def facility(make_facility):
    return make_facility()


@pytest.fixture
def make_match(db, user, future_date):
    def _make(organizer=None, players=(), **kwargs):
        defaults = dict(
            title="Weekend Badminton Fun",
            sport=Sport.BADMINTON,
            skill_level=SkillLevel.INTERMEDIATE,
            location="Elite Badminton Center, Koramangala",
            match_date=future_date,
            start_time=time(18, 0),
            end_time=time(20, 0),
            max_players=4,
            price_per_person=Decimal("0"),
        )
        defaults.update(kwargs)
        match = Match.objects.create(organizer=organizer or user, **defaults)
        for player in players:
            MatchParticipant.objects.create(match=match, user=player)
        return match
    return _make


@pytest.fixture
def client_logged_in(client, user):
    client.force_login(user)
    return client
