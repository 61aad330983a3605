from django.urls import path

from . import views

app_name = "studyhalls"

urlpatterns = [
    path("", views.study_hall_list, name="list"),
    path("<int:pk>/", views.study_hall_detail, name="detail"),
    path("<int:pk>/occupancy/", views.update_occupancy, name="occupancy"),
]
