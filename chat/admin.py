from django.contrib import admin

from .models import ChatMessage


@admin.register(ChatMessage)
class ChatMessageAdmin(admin.ModelAdmin):
    list_display = ["__str__", "user", "role", "created_at"]
    list_filter = ["role"]
    raw_id_fields = ["user"]
