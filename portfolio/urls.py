from django.urls import path

from . import views

app_name = "portfolio"

urlpatterns = [
    path("entries/", views.entry_list, name="entry_list"),
    path("entries/<int:pk>/", views.entry_detail, name="entry_detail"),
    path("entries/<int:pk>/verify/", views.verify_entry, name="verify_entry"),
    path("verification/", views.verification_queue, name="verification_queue"),
    path("goals/", views.goal_list, name="goal_list"),
    path("goals/<int:pk>/", views.goal_detail, name="goal_detail"),
    path("target-schools/", views.target_school_list, name="target_school_list"),
    path("target-schools/<int:pk>/", views.target_school_detail, name="target_school_detail"),
    path("academics/", views.academics, name="academics"),
    path("insights/", views.insight_list, name="insight_list"),
    path("insights/<slug:question_key>/", views.insight_answer, name="insight_answer"),
    path("overview/", views.overview, name="overview"),
]
