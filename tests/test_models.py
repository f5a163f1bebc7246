from datetime import time, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from booking.models import (
    Booking,
    BookingStatus,
    Match,
    MatchParticipant,
    MatchStatus,
    facility_image_path,
)


def next_weekday(weekday):
    today = timezone.localdate()
    return today + timedelta(days=(weekday - today.weekday()) % 7 or 7)


def make_booking(user, facility, booking_date, status=BookingStatus.PENDING, start=time(18), end=time(19)):
    return Booking.objects.create(
        user=user,
        facility=facility,
        booking_date=booking_date,
        start_time=start,
        end_time=end,
        total_price=Decimal("800.00"),
        status=status,
    )


class TestMatchCapacity:
    """Spots left is max players minus current players."""

    def test_spots_left(self, make_match, make_users):
        match = make_match(players=make_users(3), max_players=4)

        assert match.current_players == 3
        assert match.spots_left == 1
        assert match.is_almost_full
        assert not match.is_full
        assert match.is_joinable

    def test_full_match_is_not_joinable(self, make_match, make_users):
        match = make_match(players=make_users(4), max_players=4)

        assert match.spots_left == 0
        assert match.is_full
        assert not match.is_joinable

    def test_spots_left_never_negative(self, make_match, make_users):
        match = make_match(players=make_users(3), max_players=2)
        assert match.spots_left == 0

    def test_roomy_match_is_not_almost_full(self, make_match, make_users):
        match = make_match(players=make_users(2), max_players=10)
        assert not match.is_almost_full
        assert match.fill_percent == 20

    def test_annotated_count_matches_related_count(self, make_match, make_users):
        make_match(players=make_users(3))
        match = Match.objects.with_player_count().get()
        assert match.player_count == 3
        assert match.current_players == 3

    def test_cancelled_match_is_not_joinable(self, make_match):
        match = make_match(status=MatchStatus.CANCELLED)
        assert not match.is_joinable


class TestMatchQuerySet:
    def test_upcoming_excludes_past_and_closed(self, make_match):
        upcoming = make_match(title="Upcoming")
        make_match(title="Yesterday", match_date=timezone.localdate() - timedelta(days=1))
        make_match(title="Cancelled", status=MatchStatus.CANCELLED)
        make_match(title="Done", status=MatchStatus.COMPLETED)

        assert list(Match.objects.upcoming()) == [upcoming]

    def test_participant_upcoming(self, make_match, other_user):
        match = make_match(players=[other_user])
        entry = MatchParticipant.objects.get(user=other_user)
        assert entry.is_upcoming()

        match.status = MatchStatus.COMPLETED
        match.save()
        entry = MatchParticipant.objects.get(user=other_user)
        assert not entry.is_upcoming()


class TestBookingUpcoming:
    """Upcoming means date >= today and status pending or confirmed."""

    @pytest.mark.parametrize("days,status,expected", [
        (0, BookingStatus.PENDING, True),
        (3, BookingStatus.CONFIRMED, True),
        (3, BookingStatus.CANCELLED, False),
        (-1, BookingStatus.CONFIRMED, False),
        (-2, BookingStatus.COMPLETED, False),
    ])
    def test_is_upcoming(self, user, facility, days, status, expected):
        today = timezone.localdate()
        booking = make_booking(user, facility, today + timedelta(days=days), status)
        assert booking.is_upcoming(today) is expected

    def test_querysets_partition(self, user, facility):
        today = timezone.localdate()
        soon = make_booking(user, facility, today + timedelta(days=1))
        cancelled = make_booking(user, facility, today + timedelta(days=1), BookingStatus.CANCELLED)
        old = make_booking(user, facility, today - timedelta(days=5), BookingStatus.COMPLETED)

        assert list(Booking.objects.upcoming(today)) == [soon]
        assert set(Booking.objects.past(today)) == {cancelled, old}

    def test_overlapping_ignores_cancelled(self, user, facility):
        day = timezone.localdate() + timedelta(days=2)
        make_booking(user, facility, day, BookingStatus.CANCELLED)
        assert not Booking.objects.overlapping(facility, day, time(18, 30), time(19, 30)).exists()

        make_booking(user, facility, day, BookingStatus.CONFIRMED)
        assert Booking.objects.overlapping(facility, day, time(18, 30), time(19, 30)).exists()
        assert not Booking.objects.overlapping(facility, day, time(19), time(20)).exists()

    def test_duration_hours(self, user, facility):
        booking = make_booking(user, facility, timezone.localdate(), start=time(18), end=time(19, 30))
        assert booking.duration_hours == Decimal("1.5")


class TestFacilityHours:
    def test_weekday_slots_use_default_hours(self, facility):
        slots = facility.generate_slots_for_date(next_weekday(0))

        assert len(slots) == 12
        assert slots[0] == (time(9), time(10))
        assert slots[-1] == (time(20), time(21))

    def test_weekend_slots_use_weekend_hours(self, facility):
        slots = facility.generate_slots_for_date(next_weekday(5))

        assert len(slots) == 14
        assert slots[0] == (time(8), time(9))

    def test_custom_hours(self, make_facility):
        hours = {"wednesday": {"open": "06:30", "close": "09:00"}}
        facility = make_facility(operating_hours=hours)
        wednesday = next_weekday(2)

        assert facility.hours_for(wednesday) == (time(6, 30), time(9))
        assert facility.generate_slots_for_date(wednesday) == [
            (time(6, 30), time(7, 30)),
            (time(7, 30), time(8, 30)),
        ]
        # days missing from the stored hours fall back to defaults
        assert facility.hours_for(next_weekday(0)) == (time(9), time(21))

    def test_availability_label(self, make_facility):
        hours = {day: {"open": "06:00", "close": "23:00"} for day in (
            "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")}
        facility = make_facility(operating_hours=hours)
        assert facility.availability_label == "6 AM - 11 PM"

    def test_image_path(self):
        path = facility_image_path(None, "Court Photo.PNG")
        assert path.startswith("facility-images/")
        assert path.endswith(".png")
        assert path[len("facility-images/"):-len(".png")].isdigit()


class TestProfile:
    def test_profile_created_with_user(self, user):
        assert user.profile.display_name == "Rahul Sharma"
        assert user.profile.skill_level == "beginner"
        assert user.profile.role == "user"

    def test_staff_role(self, staff_user):
        assert staff_user.profile.role == "admin"

    def test_preferred_sports_display(self, user):
        user.profile.preferred_sports = ["table_tennis", "tennis"]
        assert user.profile.get_preferred_sports_display() == ["Table Tennis", "Tennis"]

