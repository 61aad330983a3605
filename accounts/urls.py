from django.urls import path

from . import views

app_name = "accounts"

urlpatterns = [
    path("auth/register/", views.register, name="register"),
    path("auth/verify/<uidb64>/<token>/", views.verify, name="verify"),
    path("auth/login/", views.login_view, name="login"),
    path("auth/logout/", views.logout_view, name="logout"),
    path("me/", views.me, name="me"),
    path("me/permissions/", views.my_permissions, name="my_permissions"),
    path("me/grade/check/", views.check_grade, name="check_grade"),
    path("me/notifications/", views.notification_list, name="notification_list"),
    path("me/notifications/read-all/", views.notification_read_all, name="notification_read_all"),
    path("me/notifications/<int:pk>/", views.notification_delete, name="notification_delete"),
    path("me/notifications/<int:pk>/read/", views.notification_read, name="notification_read"),
    path("me/notification-preferences/", views.notification_preferences, name="notification_preferences"),
    path("account/delete/", views.delete_account, name="delete_account"),
    path("admin/accounts/delete/", views.admin_delete_account, name="admin_delete_account"),
    path("admin/users/<int:user_id>/grade/revert/", views.revert_user_grade, name="revert_grade"),
]
