from django.urls import include, path

from tickets.views import HealthView

urlpatterns = [
    path("health/", HealthView.as_view(), name="health"),
    path("api/", include("tickets.urls")),
]
