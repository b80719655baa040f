from django.urls import path

from tickets import views

urlpatterns = [
    path("process-input/", views.ProcessInputView.as_view(), name="process-input"),
    path(
        "conversations/<str:conversation_id>/",
        views.ConversationView.as_view(),
        name="conversation",
    ),
    path("call/webhook/", views.CallWebhookView.as_view(), name="call-webhook"),
    path("tickets/", views.TicketListView.as_view(), name="ticket-list"),
    path("tickets/closed/", views.ClosedTicketsView.as_view(), name="ticket-closed"),
    path(
        "tickets/<uuid:ticket_id>/status/",
        views.TicketStatusView.as_view(),
        name="ticket-status",
    ),
]
