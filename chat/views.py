"""Streaming proxy between students and the AI study assistant."""

import logging

import requests
from django.conf import settings
from django.http import StreamingHttpResponse
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from chat.forms import ChatForm
from chat.history import ReplyCollector, group_sessions
from chat.models import ChatMessage

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are LunchLit's AI Study Buddy - a friendly, encouraging, and knowledgeable assistant designed to help high school and middle school students succeed academically.

Your main capabilities:
1. **Study Tips & Techniques**: Provide evidence-based study strategies like spaced repetition, active recall, the Pomodoro technique, and mind mapping. Adapt tips based on the subject.

2. **Homework Help**: Help students understand concepts and work through problems step-by-step. Don't just give answers - guide them to understand the material. Ask clarifying questions when needed.

3. **Test Planning & Preparation**: Help students create study schedules for upcoming tests. Consider:
   - How many days until the test
   - What topics need to be covered
   - Breaking material into manageable chunks
   - Suggesting review techniques specific to the subject

4. **Subject-Specific Advice**: Provide tailored advice for different subjects:
   - Math: Practice problems, understanding formulas
   - Science: Lab concepts, scientific method
   - English: Essay structure, reading comprehension
   - History: Timeline creation, cause-effect relationships
   - Languages: Vocabulary strategies, grammar practice

5. **Motivation & Encouragement**: Be supportive and encouraging. Recognize effort, celebrate progress, and help students build confidence.

Guidelines:
- Keep responses concise and student-friendly
- Use examples and analogies that relate to their lives
- Be patient and never condescending
- If you don't know something, admit it and suggest resources
- Encourage breaks and self-care alongside studying
- Format responses with bullet points and headers when helpful"""

UPSTREAM_ERRORS = {
    429: "Rate limits exceeded, please try again later.",
    402: "AI credits exhausted. Please try again later.",
}
UNAVAILABLE = "AI service temporarily unavailable"


def _stream(upstream, user):
    collector = ReplyCollector()
    try:
        for chunk in upstream.iter_content(chunk_size=None):
            collector.feed(chunk)
            yield chunk
    finally:
        upstream.close()
    if collector.text:
        ChatMessage.objects.create(user=user, role="assistant", content=collector.text)


@api_view(["POST"])
def study_chat(request):
    """Relay the conversation to the AI gateway and stream its SSE reply back."""
    form = ChatForm(request.data)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)

    api_key = settings.AI_GATEWAY_API_KEY
    if not api_key:
        logger.error("AI_GATEWAY_API_KEY is not configured")
        return Response(
            {"error": "AI_GATEWAY_API_KEY is not configured"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    messages = form.cleaned_data["messages"]
    logger.info("Chat request from user %s with %d messages", request.user.pk, len(messages))
    try:
        upstream = requests.post(
            settings.AI_GATEWAY_URL,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": settings.AI_CHAT_MODEL,
                "messages": [{"role": "system", "content": SYSTEM_PROMPT}, *messages],
                "stream": True,
            },
            stream=True,
            timeout=settings.AI_GATEWAY_TIMEOUT,
        )
    except requests.RequestException:
        logger.exception("AI gateway request failed")
        return Response({"error": UNAVAILABLE}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if upstream.status_code != 200:
        body = upstream.text
        upstream.close()
        if upstream.status_code in UPSTREAM_ERRORS:
            logger.warning("AI gateway returned %s", upstream.status_code)
            return Response(
                {"error": UPSTREAM_ERRORS[upstream.status_code]},
                status=upstream.status_code,
            )
        logger.error("AI gateway error %s: %s", upstream.status_code, body[:500])
        return Response({"error": UNAVAILABLE}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    question = messages[-1]
    if question["role"] == "user":
        ChatMessage.objects.create(user=request.user, role="user", content=question["content"])

    response = StreamingHttpResponse(_stream(upstream, request.user), content_type="text/event-stream")
    response["Cache-Control"] = "no-cache"
    return response


@api_view(["GET", "DELETE"])
def chat_history(request):
    """Past conversations grouped into sessions, newest first; DELETE clears them."""
    messages = ChatMessage.objects.filter(user=request.user)
    if request.method == "DELETE":
        deleted, _ = messages.delete()
        logger.info("Cleared %d chat messages for user %s", deleted, request.user.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)
    return Response(group_sessions(messages.order_by("created_at", "id")))
