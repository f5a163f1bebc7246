# sportbook/urls.py
from django.contrib import admin
from django.urls import path
from booking import views
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    path('admin/', admin.site.urls),

    # Landing
    path('', views.home, name='home'),

    # Auth
    path('login/', views.login_page, name='login'),
    path('logout/', views.logout_view, name='logout'),
    path('register/', views.register_page, name='register'),

    # Facilities + booking flow
    path('facilities/', views.facility_list, name='facilities'),
    path('facility/<int:facility_id>/', views.facility_details, name='facility-details'),
    path('facility/<int:facility_id>/book/', views.facility_booking, name='facility-booking'),

    # Matches
    path('matches/', views.match_list, name='matches'),
    path('matches/new/', views.create_match_view, name='create-match'),
    path('match/<int:match_id>/', views.match_details, name='match-details'),
    path('match/<int:match_id>/join/', views.join_match_view, name='join-match'),
    path('match/<int:match_id>/leave/', views.leave_match_view, name='leave-match'),
    path('match/<int:match_id>/cancel/', views.cancel_match_view, name='cancel-match'),

    # My bookings
    path('bookings/', views.my_bookings, name='my-bookings'),
    path('booking/<int:booking_id>/cancel/', views.cancel_booking_view, name='cancel-booking'),

    # Payment
    path('checkout/<str:kind>/<int:item_id>/', views.checkout, name='checkout'),

    # Profile
    path('profile/', views.edit_profile, name='profile'),

    # Admin console (staff)
    path('console/', views.admin_console, name='admin-console'),
    path('console/facility/<int:facility_id>/edit/', views.admin_edit_facility, name='admin-edit-facility'),
    path('console/facility/<int:facility_id>/delete/', views.admin_delete_facility, name='admin-delete-facility'),

    path("help/", views.help_support, name="help-support"),
]

# Serve uploaded media files in DEBUG (facility images, avatars)
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
