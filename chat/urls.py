from django.urls import path

from . import views

app_name = "chat"

urlpatterns = [
    path("", views.study_chat, name="study_chat"),
    path("history/", views.chat_history, name="history"),
]
