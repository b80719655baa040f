"""
WebSocket URL routing configuration.
"""

from django.urls import re_path

from tickets.ws.consumers import DashboardConsumer

websocket_urlpatterns = [
    re_path(r"^ws/dashboard/?$", DashboardConsumer.as_asgi()),
]
