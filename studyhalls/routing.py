from django.urls import path

from .consumers import StudyHallConsumer

websocket_urlpatterns = [
    path("ws/study-halls/", StudyHallConsumer.as_asgi()),
]
