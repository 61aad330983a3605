from django import forms
from django.conf import settings

CHAT_ROLES = ("user", "assistant")


class ChatForm(forms.Form):
    messages = forms.JSONField()

    def clean_messages(self):
        messages = self.cleaned_data["messages"]
        if not isinstance(messages, list) or not messages:
            raise forms.ValidationError("messages must be a non-empty list.")
        if len(messages) > settings.CHAT_MAX_MESSAGES:
            raise forms.ValidationError(
                f"At most {settings.CHAT_MAX_MESSAGES} messages are allowed."
            )

        cleaned = []
        for number, message in enumerate(messages, start=1):
            if not isinstance(message, dict):
                raise forms.ValidationError(f"Message {number} must be an object.")
            role, content = message.get("role"), message.get("content")
            if role not in CHAT_ROLES:
                raise forms.ValidationError(
                    f"Message {number}: role must be 'user' or 'assistant'."
                )
            if not isinstance(content, str) or not content.strip():
                raise forms.ValidationError(f"Message {number}: content is required.")
            if len(content) > settings.CHAT_MAX_MESSAGE_LENGTH:
                raise forms.ValidationError(
                    f"Message {number}: content is longer than "
                    f"{settings.CHAT_MAX_MESSAGE_LENGTH} characters."
                )
            cleaned.append({"role": role, "content": content})
        return cleaned
