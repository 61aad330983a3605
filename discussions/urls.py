from django.urls import path

from . import views

app_name = "discussions"

urlpatterns = [
    path("", views.thread_list, name="list"),
    path("<int:pk>/", views.thread_detail, name="detail"),
    path("<int:pk>/replies/", views.reply_create, name="reply"),
    path("<int:pk>/pin/", views.toggle_pin, name="pin"),
    path("categories/", views.category_list, name="category_list"),
    path("categories/<int:pk>/", views.category_delete, name="category_delete"),
]
