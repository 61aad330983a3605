from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("accounts.urls")),
    path("api/", include("core.urls")),
    path("api/study-halls/", include("studyhalls.urls")),
    path("api/discussions/", include("discussions.urls")),
    path("api/menus/", include("menus.urls")),
    path("api/planner/", include("planner.urls")),
    path("api/portfolio/", include("portfolio.urls")),
    path("api/chat/", include("chat.urls")),
]
