import logging
import math
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from .models import (
    ACTIVE_BOOKING_STATUSES,
    Booking,
    BookingStatus,
    Facility,
    Match,
    MatchParticipant,
    MatchStatus,
    Order,
    OrderStatus,
    hours_between,
)

logger = logging.getLogger(__name__)


# -------------------------
# Errors
# -------------------------
class BookingError(Exception):
    """Base class for errors shown to the user as a notification."""


class SlotUnavailable(BookingError):
    pass


class MatchFull(BookingError):
    pass


class AlreadyJoined(BookingError):
    pass


class NotJoined(BookingError):
    pass


class MatchClosed(BookingError):
    pass


class InvalidStatusTransition(BookingError):
    pass


class PaymentFailed(BookingError):
    pass


# -------------------------
# Browsing
# -------------------------
def filter_facilities(qs, search="", sport="", sort=""):
    return qs.search(search).for_sport(sport).sorted_by(sort)


def filter_matches(qs, search="", sport="", skill=""):
    return qs.search(search).for_sport(sport).for_skill(skill)


def slot_availability(facility, date, now=None):
    """
    Returns one dict per slot of the day:
      {"start": "HH:MM", "end": "HH:MM", "available": bool}
    A slot is unavailable once it has started or when an active booking overlaps it.
    """
    now = now or timezone.localtime()
    booked = list(
        facility.bookings.active()
        .filter(booking_date=date)
        .values_list("start_time", "end_time")
    )

    availability = []
    for start, end in facility.generate_slots_for_date(date):
        taken = any(b_start < end and b_end > start for b_start, b_end in booked)
        started = date < now.date() or (date == now.date() and start <= now.time())
        availability.append({
            "start": start.strftime("%H:%M"),
            "end": end.strftime("%H:%M"),
            "available": not (taken or started),
        })
    return availability


# -------------------------
# Facility bookings
# -------------------------
def quote_booking(facility, start, end):
    hours = hours_between(start, end)
    return (facility.price_per_hour * hours).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def create_booking(user, facility, date, start, end, notes="", now=None):
    now = now or timezone.localtime()

    if not facility.is_active:
        raise SlotUnavailable("This facility is not accepting bookings.")
    if end <= start:
        raise SlotUnavailable("End time must be after start time.")

    open_time, close_time = facility.hours_for(date)
    if start < open_time or end > close_time:
        raise SlotUnavailable(
            f"{facility.name} is open {open_time:%H:%M}-{close_time:%H:%M} on that day."
        )
    if datetime.combine(date, start) <= now.replace(tzinfo=None):
        raise SlotUnavailable("You cannot book a slot in the past.")

    with transaction.atomic():
        # serialize bookings per facility
        Facility.objects.select_for_update().get(pk=facility.pk)
        if Booking.objects.overlapping(facility, date, start, end).exists():
            raise SlotUnavailable("Slot already taken. Please choose another slot.")

        booking = Booking.objects.create(
            user=user,
            facility=facility,
            booking_date=date,
            start_time=start,
            end_time=end,
            total_price=quote_booking(facility, start, end),
            notes=notes or None,
        )

    logger.info("Booking %s created for %s at %s on %s %s-%s",
                booking.pk, user.username, facility.name, date, start, end)
    return booking


def _transition(booking, allowed_from, target):
    if booking.status not in allowed_from:
        raise InvalidStatusTransition(
            f"Cannot mark a {booking.get_status_display().lower()} booking as {target.label.lower()}."
        )
    booking.status = target
    booking.save(update_fields=["status", "updated_at"])
    logger.info("Booking %s -> %s", booking.pk, target)
    return booking


def cancel_booking(booking):
    return _transition(booking, ACTIVE_BOOKING_STATUSES, BookingStatus.CANCELLED)


def confirm_booking(booking):
    return _transition(booking, (BookingStatus.PENDING,), BookingStatus.CONFIRMED)


def complete_booking(booking):
    return _transition(booking, (BookingStatus.CONFIRMED,), BookingStatus.COMPLETED)


def partition_bookings(bookings, today=None):
    today = today or timezone.localdate()
    upcoming, past = [], []
    for booking in bookings:
        (upcoming if booking.is_upcoming(today) else past).append(booking)
    return upcoming, past


# -------------------------
# Matches
# -------------------------
def create_match(organizer, data):
    with transaction.atomic():
        match = Match.objects.create(organizer=organizer, **data)
        MatchParticipant.objects.create(match=match, user=organizer)
        _refresh_capacity(match)
    logger.info("Match %s '%s' created by %s", match.pk, match.title, organizer.username)
    return match


def _refresh_capacity(match):
    count = match.participants.count()
    if match.status == MatchStatus.OPEN and count >= match.max_players:
        match.status = MatchStatus.FULL
    elif match.status == MatchStatus.FULL and count < match.max_players:
        match.status = MatchStatus.OPEN
    else:
        return
    match.save(update_fields=["status", "updated_at"])


def join_match(user, match):
    with transaction.atomic():
        match = Match.objects.select_for_update().get(pk=match.pk)

        if match.status not in (MatchStatus.OPEN, MatchStatus.FULL):
            raise MatchClosed(f"This match is {match.get_status_display().lower()}.")
        if match.participants.filter(user=user).exists():
            raise AlreadyJoined("You have already joined this match.")
        if match.participants.count() >= match.max_players:
            raise MatchFull("This match is full.")

        try:
            with transaction.atomic():
                participant = MatchParticipant.objects.create(match=match, user=user)
        except IntegrityError:
            raise AlreadyJoined("You have already joined this match.")

        _refresh_capacity(match)

    logger.info("%s joined match %s", user.username, match.pk)
    return participant


def leave_match(user, match):
    with transaction.atomic():
        match = Match.objects.select_for_update().get(pk=match.pk)
        if match.organizer_id == user.pk:
            raise BookingError("Organizers cannot leave their own match. Cancel it instead.")
        if match.status not in (MatchStatus.OPEN, MatchStatus.FULL):
            raise MatchClosed(f"This match is {match.get_status_display().lower()}.")

        deleted, _ = match.participants.filter(user=user).delete()
        if not deleted:
            raise NotJoined("You are not part of this match.")

        _refresh_capacity(match)

    logger.info("%s left match %s", user.username, match.pk)
    return match


def cancel_match(match, user):
    if match.organizer_id != user.pk:
        raise BookingError("Only the organizer can cancel this match.")
    if match.status not in (MatchStatus.OPEN, MatchStatus.FULL):
        raise InvalidStatusTransition(f"This match is already {match.get_status_display().lower()}.")
    match.status = MatchStatus.CANCELLED
    match.save(update_fields=["status", "updated_at"])
    logger.info("Match %s cancelled by %s", match.pk, user.username)
    return match


# -------------------------
# Checkout
# -------------------------
def platform_fee(price):
    return Decimal(math.ceil(Decimal(price) * Decimal(str(settings.PLATFORM_FEE_RATE))))


def checkout_total(price):
    return Decimal(price) + platform_fee(price)


def checkout_price(item):
    if isinstance(item, Booking):
        return item.total_price
    return item.price_per_person


def charge(order):
    """
    Payment gateway hook. No gateway is wired in; every charge succeeds.
    """
    return True


def process_payment(user, item, method):
    """
    item is either a pending Booking (confirmed on success) or a Match
    (joined on success).
    """
    total = checkout_total(checkout_price(item))
    order = Order.objects.create(
        user=user,
        booking=item if isinstance(item, Booking) else None,
        match=item if isinstance(item, Match) else None,
        amount=int(total * 100),
        currency=settings.PAYMENT_CURRENCY,
        payment_method=method,
    )

    try:
        with transaction.atomic():
            if not charge(order):
                raise PaymentFailed("Payment failed. Please try again.")
            if isinstance(item, Booking):
                confirm_booking(item)
            else:
                join_match(user, item)
            order.status = OrderStatus.COMPLETED
            order.save(update_fields=["status", "updated_at"])
    except BookingError:
        order.status = OrderStatus.FAILED
        order.save(update_fields=["status", "updated_at"])
        logger.warning("Order %s failed for %s", order.pk, user.username)
        raise

    logger.info("Order %s completed: %s paise via %s", order.pk, order.amount, method)
    return order


# -------------------------
# Housekeeping
# -------------------------
def sync_statuses(now=None):
    now = now or timezone.localtime()
    today = now.date()

    bookings = Booking.objects.filter(
        status=BookingStatus.CONFIRMED, booking_date__lt=today
    ).update(status=BookingStatus.COMPLETED, updated_at=timezone.now())

    matches = Match.objects.filter(
        status__in=[MatchStatus.OPEN, MatchStatus.FULL, MatchStatus.IN_PROGRESS],
        match_date__lt=today,
    ).update(status=MatchStatus.COMPLETED, updated_at=timezone.now())

    # unpaid holds block their slot; release them after the hold window
    hold_cutoff = now - timedelta(minutes=settings.PENDING_HOLD_MINUTES)
    released = Booking.objects.filter(
        status=BookingStatus.PENDING, created_at__lt=hold_cutoff
    ).update(status=BookingStatus.CANCELLED, updated_at=timezone.now())

    logger.info(
        "Status sync: %s bookings and %s matches completed, %s pending holds released",
        bookings, matches, released,
    )
    return bookings, matches, released
