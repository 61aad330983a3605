from django.urls import path

from . import views

app_name = "core"

urlpatterns = [
    path("roles/custom/", views.custom_role_list, name="custom_role_list"),
    path("roles/custom/<int:pk>/", views.custom_role_detail, name="custom_role_detail"),
    path("roles/verifier/", views.request_verifier_role, name="request_verifier_role"),
    path("roles/audit/", views.audit_log, name="audit_log"),
    path("users/<int:user_id>/roles/", views.user_roles, name="user_roles"),
    path(
        "users/<int:user_id>/roles/<int:assignment_id>/",
        views.user_role_detail,
        name="user_role_detail",
    ),
    path("role-requests/", views.role_request_list, name="role_request_list"),
    path("role-requests/mine/", views.my_role_requests, name="my_role_requests"),
    path("role-requests/<int:pk>/review/", views.review_role_request, name="review_role_request"),
    path("email-domains/", views.email_domain_list, name="email_domain_list"),
    path("email-domains/<int:pk>/", views.email_domain_detail, name="email_domain_detail"),
    path("schools/", views.school_list, name="school_list"),
    path("schools/<int:pk>/", views.school_detail, name="school_detail"),
    path("suggestions/", views.suggestion_list, name="suggestion_list"),
    path("admin/suggestions/", views.admin_suggestion_list, name="admin_suggestion_list"),
    path(
        "admin/suggestions/<int:pk>/",
        views.admin_suggestion_status,
        name="admin_suggestion_status",
    ),
]
