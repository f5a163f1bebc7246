import re

from django import forms
from django.contrib.auth.models import User
from django.utils import timezone

from .models import (
    AMENITY_CHOICES,
    WEEKDAYS,
    Facility,
    Match,
    PaymentMethod,
    Profile,
    Sport,
    default_operating_hours,
)


class FacilityForm(forms.ModelForm):
    amenities = forms.MultipleChoiceField(
        choices=[(a, a) for a in AMENITY_CHOICES],
        widget=forms.CheckboxSelectMultiple,
        required=False
    )
    contact_phone = forms.CharField(required=False, max_length=30, label="Contact Phone")
    contact_email = forms.EmailField(required=False, label="Contact Email")

    class Meta:
        model = Facility
        fields = [
            'name', 'location', 'address', 'description', 'sport',
            'price_per_hour', 'image', 'amenities', 'is_active'
        ]
        widgets = {
            'description': forms.Textarea(attrs={'rows': 3}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        hours = default_operating_hours()
        if self.instance.pk:
            hours.update(self.instance.operating_hours or {})
            self.fields['contact_phone'].initial = self.instance.contact_phone
            self.fields['contact_email'].initial = self.instance.contact_email

        # one open/close pair per weekday
        for day in WEEKDAYS:
            for edge in ("open", "close"):
                self.fields[f"{day}_{edge}"] = forms.TimeField(
                    initial=hours[day][edge],
                    label=f"{day.title()} {edge}",
                    widget=forms.TimeInput(attrs={'type': 'time'}, format="%H:%M"),
                )

    def hour_fields(self):
        return [(day, self[f"{day}_open"], self[f"{day}_close"]) for day in WEEKDAYS]

    def clean(self):
        cleaned = super().clean()
        for day in WEEKDAYS:
            open_time = cleaned.get(f"{day}_open")
            close_time = cleaned.get(f"{day}_close")
            if open_time and close_time and close_time <= open_time:
                self.add_error(f"{day}_close", f"{day.title()} closing time must be after opening time.")
        return cleaned

    def save(self, commit=True):
        facility = super().save(commit=False)
        facility.operating_hours = {
            day: {
                "open": self.cleaned_data[f"{day}_open"].strftime("%H:%M"),
                "close": self.cleaned_data[f"{day}_close"].strftime("%H:%M"),
            }
            for day in WEEKDAYS
        }
        facility.contact_info = {
            "phone": self.cleaned_data.get("contact_phone", ""),
            "email": self.cleaned_data.get("contact_email", ""),
        }
        if commit:
            facility.save()
        return facility


class MatchForm(forms.ModelForm):
    class Meta:
        model = Match
        fields = [
            'title', 'description', 'sport', 'skill_level', 'facility', 'location',
            'match_date', 'start_time', 'end_time', 'max_players', 'price_per_person'
        ]
        widgets = {
            'description': forms.Textarea(attrs={'rows': 3}),
            'match_date': forms.DateInput(attrs={'type': 'date'}),
            'start_time': forms.TimeInput(attrs={'type': 'time'}),
            'end_time': forms.TimeInput(attrs={'type': 'time'}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['facility'].queryset = Facility.objects.active().order_by("name")
        self.fields['facility'].required = False
        self.fields['location'].required = False

    def clean(self):
        cleaned = super().clean()
        start = cleaned.get("start_time")
        end = cleaned.get("end_time")
        match_date = cleaned.get("match_date")
        facility = cleaned.get("facility")

        if start and end and end <= start:
            self.add_error("end_time", "End time must be after start time.")
        if match_date and match_date < timezone.localdate():
            self.add_error("match_date", "Match date cannot be in the past.")

        if not cleaned.get("location"):
            if facility:
                cleaned["location"] = f"{facility.name}, {facility.location}"
            else:
                self.add_error("location", "Enter a location or pick a facility.")
        return cleaned


class BookingForm(forms.Form):
    booking_date = forms.DateField(widget=forms.DateInput(attrs={'type': 'date'}))
    start_time = forms.TimeField(widget=forms.TimeInput(attrs={'type': 'time'}))
    end_time = forms.TimeField(widget=forms.TimeInput(attrs={'type': 'time'}))
    notes = forms.CharField(required=False, widget=forms.Textarea(attrs={'rows': 2}))

    def clean(self):
        cleaned = super().clean()
        start = cleaned.get("start_time")
        end = cleaned.get("end_time")
        if start and end and end <= start:
            raise forms.ValidationError("End time must be after start time.")
        return cleaned


class CheckoutForm(forms.Form):
    payment_method = forms.ChoiceField(
        choices=PaymentMethod.choices,
        initial=PaymentMethod.CARD,
        widget=forms.RadioSelect
    )
    card_number = forms.CharField(required=False, max_length=23)
    expiry = forms.CharField(required=False, max_length=5, label="Expiry Date")
    cvv = forms.CharField(required=False, max_length=4, label="CVV")
    card_name = forms.CharField(required=False, max_length=100, label="Cardholder Name")

    def clean(self):
        cleaned = super().clean()
        if cleaned.get("payment_method") != PaymentMethod.CARD:
            return cleaned

        number = re.sub(r"[\s-]", "", cleaned.get("card_number", ""))
        if not re.fullmatch(r"\d{12,19}", number):
            self.add_error("card_number", "Enter a valid card number.")
        if not re.fullmatch(r"(0[1-9]|1[0-2])/\d{2}", cleaned.get("expiry", "")):
            self.add_error("expiry", "Use MM/YY.")
        if not re.fullmatch(r"\d{3,4}", cleaned.get("cvv", "")):
            self.add_error("cvv", "Enter a valid CVV.")
        if not cleaned.get("card_name", "").strip():
            self.add_error("card_name", "Enter the cardholder name.")
        return cleaned


class ProfileForm(forms.ModelForm):
    email = forms.EmailField(required=False, label="Email")
    preferred_sports = forms.MultipleChoiceField(
        choices=Sport.choices,
        widget=forms.CheckboxSelectMultiple,
        required=False
    )

    class Meta:
        model = Profile
        fields = ['display_name', 'phone', 'bio', 'skill_level', 'preferred_sports', 'location', 'avatar']
        widgets = {
            'bio': forms.Textarea(attrs={'rows': 3}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['display_name'].required = True
        self.fields['email'].initial = self.instance.user.email

    def clean_email(self):
        email = self.cleaned_data.get('email', '').strip()
        if email and User.objects.filter(email__iexact=email).exclude(pk=self.instance.user_id).exists():
            raise forms.ValidationError("An account with this email already exists.")
        return email

    def save(self, commit=True):
        # the user row is always written, even with commit=False
        profile = super().save(commit)
        user = profile.user
        user.first_name = profile.display_name
        user.email = self.cleaned_data.get('email', '') or user.email
        user.save(update_fields=['first_name', 'email'])
        return profile
