from django.urls import path

from . import views

app_name = "menus"

urlpatterns = [
    path("week/", views.week, name="week"),
    path("schedules/", views.schedule_list, name="schedule_list"),
    path("schedules/upsert/", views.upsert_schedule, name="upsert"),
    path("import/", views.import_from_url, name="import"),
    path("dietary-tags/", views.dietary_tag_list, name="dietary_tag_list"),
    path("dietary-tags/<int:pk>/", views.dietary_tag_delete, name="dietary_tag_delete"),
]
