from django.urls import path

from .views import (
    CancelView,
    CompleteView,
    PrepareView,
    PreviewView,
    ReservationStatusView,
    StampProgressView,
)

app_name = "perkman"

urlpatterns = [
    path("prepare", PrepareView.as_view(), name="prepare"),
    path("preview", PreviewView.as_view(), name="preview"),
    path("complete", CompleteView.as_view(), name="complete"),
    path("cancel", CancelView.as_view(), name="cancel"),
    path("stamps", StampProgressView.as_view(), name="stamps"),
    path("reservations/<str:token>", ReservationStatusView.as_view(), name="reservation-status"),
]
