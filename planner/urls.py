from django.urls import path

from . import views

app_name = "planner"

urlpatterns = [
    path("tasks/", views.task_list, name="task_list"),
    path("tasks/<int:pk>/", views.task_detail, name="task_detail"),
    path("classes/", views.class_list, name="class_list"),
    path("classes/<int:pk>/", views.class_detail, name="class_detail"),
    path("export/<str:dataset>/<str:fmt>/", views.export_data, name="export"),
    path("import/<str:dataset>/", views.import_data, name="import"),
    path("calendar.ics", views.calendar, name="calendar"),
]
