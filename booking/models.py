import os
from datetime import datetime, timedelta
from decimal import Decimal

from django.conf import settings
from django.contrib.auth.models import User
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Count, Q
from django.db.models.signals import post_save
from django.dispatch import receiver
from django.utils import timezone


class Sport(models.TextChoices):
    BADMINTON = "badminton", "Badminton"
    TENNIS = "tennis", "Tennis"
    FOOTBALL = "football", "Football"
    CRICKET = "cricket", "Cricket"
    BASKETBALL = "basketball", "Basketball"
    SQUASH = "squash", "Squash"
    TABLE_TENNIS = "table_tennis", "Table Tennis"


class SkillLevel(models.TextChoices):
    BEGINNER = "beginner", "Beginner"
    INTERMEDIATE = "intermediate", "Intermediate"
    ADVANCED = "advanced", "Advanced"
    PROFESSIONAL = "professional", "Professional"


WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

AMENITY_CHOICES = [
    "Parking",
    "Changing Rooms",
    "Equipment Rental",
    "Cafeteria",
    "Air Conditioning",
    "Lighting",
    "Washrooms",
]


def default_operating_hours():
    hours = {}
    for day in WEEKDAYS:
        if day in ("saturday", "sunday"):
            hours[day] = {"open": "08:00", "close": "22:00"}
        else:
            hours[day] = {"open": "09:00", "close": "21:00"}
    return hours


def default_contact_info():
    return {"phone": "", "email": ""}


def facility_image_path(instance, filename):
    ext = os.path.splitext(filename)[1].lower() or ".jpg"
    stamp = int(timezone.now().timestamp() * 1000)
    return f"facility-images/{stamp}{ext}"


# -------------------------
# Profiles
# -------------------------
class Profile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='profile')
    display_name = models.CharField(max_length=150, blank=True)
    avatar = models.ImageField(upload_to='avatars/', blank=True, null=True)
    phone = models.CharField(max_length=30, blank=True, null=True)
    bio = models.TextField(blank=True)
    skill_level = models.CharField(max_length=20, choices=SkillLevel.choices, default=SkillLevel.BEGINNER)
    preferred_sports = models.JSONField(default=list, blank=True)
    location = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user.username} profile"

    @property
    def role(self):
        return "admin" if self.user.is_staff else "user"

    def get_preferred_sports_display(self):
        labels = dict(Sport.choices)
        return [labels.get(s, s) for s in self.preferred_sports or []]


@receiver(post_save, sender=User)
def create_or_update_user_profile(sender, instance, created, **kwargs):
    if created:
        Profile.objects.create(user=instance, display_name=instance.first_name or instance.username)
    else:
        Profile.objects.get_or_create(
            user=instance,
            defaults={"display_name": instance.first_name or instance.username},
        )


# -------------------------
# Facilities
# -------------------------
class FacilityQuerySet(models.QuerySet):
    SORT_KEYS = {
        "price-low": ("price_per_hour", "name"),
        "price-high": ("-price_per_hour", "name"),
        "newest": ("-created_at",),
    }

    def active(self):
        return self.filter(is_active=True)

    def search(self, term):
        term = (term or "").strip()
        if not term:
            return self
        return self.filter(Q(name__icontains=term) | Q(location__icontains=term))

    def for_sport(self, sport):
        if not sport or sport == "all":
            return self
        return self.filter(sport=sport)

    def sorted_by(self, key):
        return self.order_by(*self.SORT_KEYS.get(key, self.SORT_KEYS["newest"]))


class Facility(models.Model):
    name = models.CharField(max_length=150)
    location = models.CharField(max_length=255)
    address = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    sport = models.CharField(max_length=20, choices=Sport.choices)
    price_per_hour = models.DecimalField(
        max_digits=8, decimal_places=2, validators=[MinValueValidator(Decimal("0"))]
    )
    image = models.ImageField(upload_to=facility_image_path, blank=True, null=True)
    amenities = models.JSONField(default=list, blank=True)
    operating_hours = models.JSONField(default=default_operating_hours, blank=True)
    contact_info = models.JSONField(default=default_contact_info, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = FacilityQuerySet.as_manager()

    class Meta:
        verbose_name_plural = "Facilities"
        ordering = ["-created_at"]

    def __str__(self):
        return self.name

    def hours_for(self, date):
        day = WEEKDAYS[date.weekday()]
        hours = (self.operating_hours or {}).get(day) or default_operating_hours()[day]
        open_time = datetime.strptime(hours["open"], "%H:%M").time()
        close_time = datetime.strptime(hours["close"], "%H:%M").time()
        return open_time, close_time

    def generate_slots_for_date(self, date):
        open_time, close_time = self.hours_for(date)
        step = timedelta(minutes=settings.BOOKING_SLOT_MINUTES)
        slots = []
        start_dt = datetime.combine(date, open_time)
        end_dt = datetime.combine(date, close_time)
        cur = start_dt
        while cur + step <= end_dt:
            slots.append((cur.time(), (cur + step).time()))
            cur += step
        return slots

    @property
    def availability_label(self):
        open_time, close_time = self.hours_for(timezone.localdate())
        return f"{_short_time(open_time)} - {_short_time(close_time)}"

    @property
    def contact_phone(self):
        return (self.contact_info or {}).get("phone", "")

    @property
    def contact_email(self):
        return (self.contact_info or {}).get("email", "")


def _short_time(value):
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    if value.minute:
        return f"{hour}:{value.minute:02d} {suffix}"
    return f"{hour} {suffix}"


# -------------------------
# Matches
# -------------------------
class MatchStatus(models.TextChoices):
    OPEN = "open", "Open"
    FULL = "full", "Full"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class MatchQuerySet(models.QuerySet):
    def search(self, term):
        term = (term or "").strip()
        if not term:
            return self
        return self.filter(Q(title__icontains=term) | Q(location__icontains=term))

    def for_sport(self, sport):
        if not sport or sport == "all":
            return self
        return self.filter(sport=sport)

    def for_skill(self, level):
        if not level or level == "all":
            return self
        return self.filter(skill_level=level)

    def upcoming(self, today=None):
        today = today or timezone.localdate()
        return self.filter(match_date__gte=today).exclude(
            status__in=[MatchStatus.COMPLETED, MatchStatus.CANCELLED]
        )

    def with_player_count(self):
        return self.annotate(player_count=Count("participants"))


class Match(models.Model):
    title = models.CharField(max_length=150)
    description = models.TextField(blank=True, null=True)
    sport = models.CharField(max_length=20, choices=Sport.choices)
    skill_level = models.CharField(max_length=20, choices=SkillLevel.choices)
    facility = models.ForeignKey(
        Facility, on_delete=models.SET_NULL, null=True, blank=True, related_name='matches'
    )
    location = models.CharField(max_length=255)
    match_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    max_players = models.PositiveIntegerField(validators=[MinValueValidator(2)])
    price_per_person = models.DecimalField(
        max_digits=8, decimal_places=2, default=0, validators=[MinValueValidator(Decimal("0"))]
    )
    organizer = models.ForeignKey(User, on_delete=models.CASCADE, related_name='organized_matches')
    status = models.CharField(max_length=20, choices=MatchStatus.choices, default=MatchStatus.OPEN)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = MatchQuerySet.as_manager()

    class Meta:
        verbose_name_plural = "Matches"
        ordering = ["match_date", "start_time"]

    def __str__(self):
        return f"{self.title} | {self.get_sport_display()} | {self.match_date}"

    @property
    def current_players(self):
        # set by MatchQuerySet.with_player_count()
        count = getattr(self, "player_count", None)
        if count is None:
            count = self.participants.count()
        return count

    @property
    def spots_left(self):
        return max(self.max_players - self.current_players, 0)

    @property
    def is_full(self):
        return self.spots_left == 0

    @property
    def is_almost_full(self):
        return self.spots_left <= 2

    @property
    def fill_percent(self):
        if not self.max_players:
            return 0
        return min(100, round(self.current_players * 100 / self.max_players))

    @property
    def is_joinable(self):
        return self.status == MatchStatus.OPEN and not self.is_full

    def has_participant(self, user):
        if not user.is_authenticated:
            return False
        return self.participants.filter(user=user).exists()


class MatchParticipant(models.Model):
    match = models.ForeignKey(Match, on_delete=models.CASCADE, related_name='participants')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='match_entries')
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('match', 'user')
        ordering = ["joined_at"]

    def __str__(self):
        return f"{self.user.username} in {self.match.title}"

    def is_upcoming(self, today=None):
        today = today or timezone.localdate()
        return self.match.match_date >= today and self.match.status not in (
            MatchStatus.COMPLETED,
            MatchStatus.CANCELLED,
        )


# -------------------------
# Bookings
# -------------------------
class BookingStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    CANCELLED = "cancelled", "Cancelled"
    COMPLETED = "completed", "Completed"


ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


class BookingQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status__in=ACTIVE_BOOKING_STATUSES)

    def upcoming(self, today=None):
        today = today or timezone.localdate()
        return self.active().filter(booking_date__gte=today).order_by("booking_date", "start_time")

    def past(self, today=None):
        today = today or timezone.localdate()
        return self.exclude(
            Q(booking_date__gte=today) & Q(status__in=ACTIVE_BOOKING_STATUSES)
        ).order_by("-booking_date", "-start_time")

    def overlapping(self, facility, date, start, end):
        return self.active().filter(
            facility=facility,
            booking_date=date,
            start_time__lt=end,
            end_time__gt=start,
        )


class Booking(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='bookings')
    facility = models.ForeignKey(Facility, on_delete=models.CASCADE, related_name='bookings')

    booking_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()

    total_price = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=20, choices=BookingStatus.choices, default=BookingStatus.PENDING)
    notes = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BookingQuerySet.as_manager()

    class Meta:
        ordering = ["-booking_date", "-start_time"]

    def __str__(self):
        return f"{self.facility.name} | {self.booking_date} {self.start_time:%H:%M}"

    def is_upcoming(self, today=None):
        today = today or timezone.localdate()
        return self.booking_date >= today and self.status in ACTIVE_BOOKING_STATUSES

    @property
    def can_cancel(self):
        return self.is_upcoming()

    @property
    def duration_hours(self):
        return hours_between(self.start_time, self.end_time)


def hours_between(start, end):
    day = datetime(2000, 1, 1)
    delta = datetime.combine(day, end) - datetime.combine(day, start)
    return Decimal(delta.total_seconds()) / Decimal(3600)


# -------------------------
# Payments
# -------------------------
class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class PaymentMethod(models.TextChoices):
    CARD = "card", "Credit/Debit Card"
    UPI = "upi", "UPI Payment"
    NETBANKING = "netbanking", "Net Banking"


class Order(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='orders')
    booking = models.ForeignKey(Booking, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    match = models.ForeignKey(Match, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    amount = models.PositiveIntegerField(help_text="Amount in minor currency units")
    currency = models.CharField(max_length=3, default="inr")
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING)
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Order #{self.pk} {self.amount / 100:.2f} {self.currency.upper()} ({self.status})"
