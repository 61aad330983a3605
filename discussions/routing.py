from django.urls import path

from .consumers import DiscussionConsumer

websocket_urlpatterns = [
    path("ws/discussions/", DiscussionConsumer.as_asgi()),
]
