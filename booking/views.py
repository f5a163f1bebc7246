# booking/views.py
import logging
from datetime import datetime
from functools import wraps

from django.conf import settings
from django.contrib import messages
from django.contrib.auth import authenticate, login, logout
from django.contrib.auth.decorators import login_required
from django.contrib.auth.models import User
from django.shortcuts import render, redirect, get_object_or_404
from django.urls import reverse
from django.utils import timezone
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_POST

from . import services
from .forms import BookingForm, CheckoutForm, FacilityForm, MatchForm, ProfileForm
from .models import (
    Booking,
    BookingStatus,
    Facility,
    Match,
    MatchParticipant,
    MatchStatus,
    Profile,
    SkillLevel,
    Sport,
)

logger = logging.getLogger(__name__)

FACILITY_SORTS = [
    ("newest", "Newest"),
    ("price-low", "Price: Low to High"),
    ("price-high", "Price: High to Low"),
]


def staff_required(view):
    """
    Admin console guard. Anonymous users go to login, signed-in non-staff
    users are sent home.
    """
    @wraps(view)
    @login_required(login_url="login")
    def wrapper(request, *args, **kwargs):
        if not request.user.is_staff:
            messages.error(request, "You do not have access to the admin console.")
            return redirect("home")
        return view(request, *args, **kwargs)
    return wrapper


# -------------------------
# Landing
# -------------------------
def home(request):
    today = timezone.localdate()
    count = settings.FEATURED_COUNT
    facilities = Facility.objects.active().sorted_by("newest")
    matches = Match.objects.upcoming(today).filter(status=MatchStatus.OPEN).with_player_count()
    return render(request, "home.html", {
        "facilities": facilities[:count],
        "matches": matches[:count],
        "facility_count": facilities.count(),
        "match_count": matches.count(),
        "player_count": User.objects.filter(is_active=True).count(),
    })


# -------------------------
# Authentication
# -------------------------
def login_page(request):
    if request.method == "POST":
        username = request.POST.get("username")  # username or email
        password = request.POST.get("password")
        if username and "@" in username:
            account = User.objects.filter(email__iexact=username).first()
            if account:
                username = account.username
        user = authenticate(request, username=username, password=password)
        if user:
            login(request, user)
            next_url = request.POST.get("next") or request.GET.get("next")
            if not url_has_allowed_host_and_scheme(
                next_url, allowed_hosts={request.get_host()}, require_https=request.is_secure()
            ):
                next_url = None
            return redirect(next_url or "home")
        logger.info("Failed login for %s", username)
        messages.error(request, "Invalid username or password")
    return render(request, "login.html")


def logout_view(request):
    logout(request)
    return redirect("home")


def register_page(request):
    if request.method == "POST":
        full_name = request.POST.get("full_name", "").strip()
        email = request.POST.get("email", "").strip()
        phone = request.POST.get("phone", "").strip()
        password = request.POST.get("password")
        confirm_password = request.POST.get("confirm_password")

        if not (full_name and email and phone and password):
            messages.error(request, "All fields are required.")
            return render(request, "register.html")

        if password != confirm_password:
            messages.error(request, "Passwords do not match.")
            return render(request, "register.html")

        if User.objects.filter(email__iexact=email).exists():
            messages.error(request, "Email already registered.")
            return render(request, "register.html")

        username = email.split("@")[0]
        # ensure username unique
        base = username
        i = 1
        while User.objects.filter(username=username).exists():
            username = f"{base}{i}"
            i += 1

        user = User.objects.create_user(username=username, email=email, password=password, first_name=full_name)
        profile, _ = Profile.objects.get_or_create(user=user)
        profile.phone = phone
        profile.save()
        logger.info("Registered user %s", username)

        login(request, user)
        return redirect("home")

    return render(request, "register.html")


# -------------------------
# Facilities
# -------------------------
def facility_list(request):
    search = request.GET.get("q", "")
    sport = request.GET.get("sport", "")
    sort = request.GET.get("sort", "")

    facilities = services.filter_facilities(Facility.objects.active(), search, sport, sort)
    return render(request, "facility_list.html", {
        "facilities": facilities,
        "sports": Sport.choices,
        "sorts": FACILITY_SORTS,
        "search": search,
        "selected_sport": sport,
        "selected_sort": sort,
    })


def facility_details(request, facility_id):
    facility = get_object_or_404(Facility, id=facility_id, is_active=True)
    upcoming_matches = facility.matches.upcoming().with_player_count()
    return render(request, "facility_details.html", {
        "facility": facility,
        "matches": upcoming_matches,
    })


@login_required(login_url="login")
def facility_booking(request, facility_id):
    """
    GET ?date=YYYY-MM-DD shows the slot grid for that day.
    POST creates a pending booking and sends the user to checkout.
    """
    facility = get_object_or_404(Facility, id=facility_id, is_active=True)

    date_str = request.GET.get("date") or request.POST.get("booking_date")
    try:
        slot_date = datetime.strptime(date_str, "%Y-%m-%d").date() if date_str else timezone.localdate()
    except ValueError:
        messages.error(request, "Invalid date.")
        slot_date = timezone.localdate()

    if request.method == "POST":
        form = BookingForm(request.POST)
        if form.is_valid():
            data = form.cleaned_data
            try:
                booking = services.create_booking(
                    request.user,
                    facility,
                    data["booking_date"],
                    data["start_time"],
                    data["end_time"],
                    notes=data["notes"],
                )
            except services.BookingError as exc:
                logger.warning("Booking refused for %s at facility %s: %s", request.user.username, facility.id, exc)
                messages.error(request, str(exc))
            else:
                messages.success(request, "Slot reserved. Complete payment to confirm your booking.")
                return redirect("checkout", kind="facility", item_id=booking.id)
        else:
            messages.error(request, "Please correct the errors below.")
    else:
        form = BookingForm(initial={"booking_date": slot_date})

    return render(request, "facility_booking.html", {
        "facility": facility,
        "form": form,
        "slot_date": slot_date,
        "availability": services.slot_availability(facility, slot_date),
    })


# -------------------------
# Matches
# -------------------------
MATCH_FILTER_KEYS = ("match_sport", "match_skill")


def match_list(request):
    search = request.GET.get("q", "")

    # sport / skill filters are remembered for the session
    if "sport" in request.GET:
        request.session["match_sport"] = request.GET["sport"]
    if "skill" in request.GET:
        request.session["match_skill"] = request.GET["skill"]
    if request.GET.get("clear"):
        search = ""
        for key in MATCH_FILTER_KEYS:
            request.session.pop(key, None)

    sport = request.session.get("match_sport", "all")
    skill = request.session.get("match_skill", "all")

    matches = services.filter_matches(
        Match.objects.upcoming().select_related("organizer__profile", "facility").with_player_count(),
        search, sport, skill,
    )
    return render(request, "match_list.html", {
        "matches": matches,
        "sports": Sport.choices,
        "skill_levels": SkillLevel.choices,
        "search": search,
        "selected_sport": sport,
        "selected_skill": skill,
    })


def match_details(request, match_id):
    match = get_object_or_404(Match.objects.select_related("organizer__profile", "facility"), id=match_id)
    participants = match.participants.select_related("user__profile")
    return render(request, "match_details.html", {
        "match": match,
        "participants": participants,
        "has_joined": match.has_participant(request.user),
        "is_organizer": request.user.is_authenticated and match.organizer_id == request.user.id,
    })


@login_required(login_url="login")
def create_match_view(request):
    if request.method == "POST":
        form = MatchForm(request.POST)
        if form.is_valid():
            match = services.create_match(request.user, form.cleaned_data)
            messages.success(request, "Match created. Players can now join.")
            return redirect("match-details", match_id=match.id)
        messages.error(request, "Please correct the errors below.")
    else:
        initial = {}
        facility_id = request.GET.get("facility")
        if facility_id:
            facility = Facility.objects.active().filter(id=facility_id).first()
            if facility:
                initial = {"facility": facility, "sport": facility.sport}
        form = MatchForm(initial=initial)
    return render(request, "match_form.html", {"form": form})


@require_POST
@login_required(login_url="login")
def join_match_view(request, match_id):
    match = get_object_or_404(Match, id=match_id)

    if match.price_per_person > 0:
        # paid matches are joined once payment succeeds
        if match.is_full:
            messages.error(request, "This match is full.")
            return redirect("match-details", match_id=match.id)
        return redirect("checkout", kind="match", item_id=match.id)

    try:
        services.join_match(request.user, match)
    except services.BookingError as exc:
        logger.warning("Join refused for %s on match %s: %s", request.user.username, match.id, exc)
        messages.error(request, str(exc))
    else:
        messages.success(request, f"You joined {match.title}.")
    return redirect("match-details", match_id=match.id)


@require_POST
@login_required(login_url="login")
def leave_match_view(request, match_id):
    match = get_object_or_404(Match, id=match_id)
    try:
        services.leave_match(request.user, match)
    except services.BookingError as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, f"You left {match.title}.")
    return redirect("match-details", match_id=match.id)


@require_POST
@login_required(login_url="login")
def cancel_match_view(request, match_id):
    match = get_object_or_404(Match, id=match_id)
    try:
        services.cancel_match(match, request.user)
    except services.BookingError as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, "Match cancelled.")
    return redirect("match-details", match_id=match.id)


# -------------------------
# My Bookings
# -------------------------
@login_required(login_url="login")
def my_bookings(request):
    today = timezone.localdate()
    bookings = Booking.objects.filter(user=request.user).select_related("facility")
    entries = MatchParticipant.objects.filter(user=request.user).select_related("match", "match__organizer")

    upcoming, past = services.partition_bookings(bookings, today)
    upcoming.sort(key=lambda b: (b.booking_date, b.start_time))
    upcoming_matches = [e for e in entries if e.is_upcoming(today)]
    past_matches = [e for e in entries if not e.is_upcoming(today)]

    return render(request, "my_bookings.html", {
        "upcoming": upcoming,
        "past": past,
        "upcoming_matches": upcoming_matches,
        "past_matches": past_matches,
        "upcoming_count": len(upcoming) + len(upcoming_matches),
        "past_count": len(past) + len(past_matches),
    })


@require_POST
@login_required(login_url="login")
def cancel_booking_view(request, booking_id):
    booking = get_object_or_404(Booking, id=booking_id, user=request.user)
    try:
        services.cancel_booking(booking)
    except services.BookingError as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, "Booking cancelled.")
    return redirect("my-bookings")


# -------------------------
# Payment
# -------------------------
@login_required(login_url="login")
def checkout(request, kind, item_id):
    if kind == "facility":
        item = get_object_or_404(Booking.objects.select_related("facility"), id=item_id, user=request.user)
        if item.status != BookingStatus.PENDING:
            messages.error(request, "This booking does not need payment.")
            return redirect("my-bookings")
    elif kind == "match":
        item = get_object_or_404(Match, id=item_id)
        if item.has_participant(request.user):
            messages.info(request, "You have already joined this match.")
            return redirect("match-details", match_id=item.id)
        if not item.is_joinable:
            messages.error(request, "This match is not accepting players.")
            return redirect("match-details", match_id=item.id)
    else:
        messages.error(request, "Booking not found")
        return redirect("home")

    price = services.checkout_price(item)

    if request.method == "POST":
        form = CheckoutForm(request.POST)
        if form.is_valid():
            try:
                services.process_payment(request.user, item, form.cleaned_data["payment_method"])
            except services.BookingError as exc:
                messages.error(request, str(exc))
                if kind == "match":
                    return redirect("match-details", match_id=item.id)
            else:
                messages.success(request, "Payment successful! Booking confirmed.")
                return redirect("my-bookings")
        else:
            messages.error(request, "Please correct the payment details.")
    else:
        form = CheckoutForm()

    return render(request, "checkout.html", {
        "kind": kind,
        "item": item,
        "form": form,
        "price": price,
        "fee": services.platform_fee(price),
        "total": services.checkout_total(price),
    })


# -------------------------
# Profile
# -------------------------
@login_required(login_url="login")
def edit_profile(request):
    profile, _ = Profile.objects.get_or_create(user=request.user)

    if request.method == "POST":
        form = ProfileForm(request.POST, request.FILES, instance=profile)
        if form.is_valid():
            form.save()
            messages.success(request, "Profile updated successfully")
            return redirect("profile")
        messages.error(request, "Please correct the errors.")
    else:
        form = ProfileForm(instance=profile)

    return render(request, "profile.html", {"form": form, "profile": profile})


# -------------------------
# Admin console
# -------------------------
@staff_required
def admin_console(request):
    if request.method == "POST":
        form = FacilityForm(request.POST, request.FILES)
        if form.is_valid():
            facility = form.save()
            logger.info("Facility %s created by %s", facility.id, request.user.username)
            messages.success(request, "Facility created successfully")
            return redirect("admin-console")
        messages.error(request, "Failed to save facility")
    else:
        form = FacilityForm()

    return render(request, "admin_console.html", {
        "form": form,
        "facilities": Facility.objects.order_by("-created_at"),
        "profiles": Profile.objects.select_related("user").order_by("-created_at"),
    })


@staff_required
def admin_edit_facility(request, facility_id):
    facility = get_object_or_404(Facility, id=facility_id)

    if request.method == "POST":
        form = FacilityForm(request.POST, request.FILES, instance=facility)
        if form.is_valid():
            form.save()
            logger.info("Facility %s updated by %s", facility.id, request.user.username)
            messages.success(request, "Facility updated successfully")
            return redirect("admin-console")
        messages.error(request, "Failed to save facility")
    else:
        form = FacilityForm(instance=facility)

    return render(request, "admin_facility_form.html", {"form": form, "facility": facility})


@require_POST
@staff_required
def admin_delete_facility(request, facility_id):
    facility = get_object_or_404(Facility, id=facility_id)
    name = facility.name
    facility.delete()
    logger.info("Facility %s (%s) deleted by %s", facility_id, name, request.user.username)
    messages.success(request, "Facility deleted successfully")
    return redirect(reverse("admin-console"))


def help_support(request):
    return render(request, "help_support.html")
