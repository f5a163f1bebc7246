from django.contrib import admin
from .models import Booking, Facility, Match, MatchParticipant, Order, Profile


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ('display_name', 'user', 'skill_level', 'location', 'created_at')
    list_filter = ('skill_level',)
    search_fields = ('display_name', 'user__username', 'user__email', 'phone')


@admin.register(Facility)
class FacilityAdmin(admin.ModelAdmin):
    list_display = ('name', 'sport', 'location', 'price_per_hour', 'is_active')
    list_filter = ('is_active', 'sport')
    search_fields = ('name', 'location', 'address')

    actions = ['activate_facilities', 'deactivate_facilities']

    def activate_facilities(self, request, queryset):
        updated = queryset.update(is_active=True)
        self.message_user(request, f"{updated} facility(ies) activated.")

    def deactivate_facilities(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"{updated} facility(ies) hidden from listings.")


class MatchParticipantInline(admin.TabularInline):
    model = MatchParticipant
    extra = 0


@admin.register(Match)
class MatchAdmin(admin.ModelAdmin):
    list_display = ('title', 'sport', 'skill_level', 'match_date', 'start_time', 'max_players', 'status')
    list_filter = ('status', 'sport', 'skill_level')
    search_fields = ('title', 'location', 'organizer__username')
    inlines = [MatchParticipantInline]


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ('facility', 'user', 'booking_date', 'start_time', 'end_time', 'total_price', 'status')
    list_filter = ('status', 'facility__sport')
    search_fields = ('facility__name', 'user__username')
    date_hierarchy = 'booking_date'


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'amount', 'currency', 'payment_method', 'status', 'created_at')
    list_filter = ('status', 'payment_method')
