from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from accounts.notifications import notify_discussion_reply
from core.models import MANAGE_DISCUSSIONS
from core.permissions import HasPermission, require_permission, resolve_permissions
from discussions.forms import DiscussionCategoryForm, ReplyForm, ThreadForm
from discussions.models import Discussion, DiscussionCategory
from discussions.serializers import DiscussionCategorySerializer, DiscussionSerializer


def _visible(user):
    """Posts from the user's school plus posts not tied to any school."""
    qs = Discussion.objects.all()
    if user.school_id:
        qs = qs.filter(Q(school_id=user.school_id) | Q(school__isnull=True))
    return qs


@api_view(["GET", "POST"])
def thread_list(request):
    """Top-level threads (``?category=`` filter), or start a new thread."""
    if request.method == "POST":
        form = ThreadForm(request.data, school_id=request.user.school_id)
        if not form.is_valid():
            return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
        thread = form.save(commit=False)
        thread.user = request.user
        thread.school_id = request.user.school_id
        thread.save()
        return Response(DiscussionSerializer(thread).data, status=status.HTTP_201_CREATED)

    threads = _visible(request.user).threads().with_authors()
    category = request.query_params.get("category")
    if category:
        threads = threads.filter(category=category)
    return Response(DiscussionSerializer(threads, many=True).data)


@api_view(["GET", "DELETE"])
def thread_detail(request, pk: int):
    """A thread with its replies (oldest first), or delete a post."""
    post = get_object_or_404(_visible(request.user), pk=pk)

    if request.method == "DELETE":
        if post.user_id != request.user.pk and not resolve_permissions(request.user).can_manage_discussions():
            raise PermissionDenied("You can only delete your own posts.")
        post.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    replies = post.replies.with_authors().order_by("created_at", "id")
    payload = DiscussionSerializer(post).data
    payload["reply_count"] = len(replies)
    payload["replies"] = DiscussionSerializer(replies, many=True).data
    return Response(payload)


@api_view(["POST"])
def reply_create(request, pk: int):
    thread = get_object_or_404(_visible(request.user), pk=pk, parent__isnull=True)
    form = ReplyForm(request.data)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
    reply = form.save(commit=False)
    reply.user = request.user
    reply.parent = thread
    reply.school_id = thread.school_id
    reply.category = thread.category
    reply.save()
    notify_discussion_reply(reply)
    return Response(DiscussionSerializer(reply).data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([HasPermission(MANAGE_DISCUSSIONS)])
def toggle_pin(request, pk: int):
    thread = get_object_or_404(Discussion, pk=pk, parent__isnull=True)
    thread.is_pinned = not thread.is_pinned
    thread.save(update_fields=["is_pinned", "updated_at"])
    return Response(DiscussionSerializer(thread).data)


@api_view(["GET", "POST"])
def category_list(request):
    """Built-in categories plus the extra ones visible to the user's school.

    Moderators may add categories for their own school; only admins may add
    categories for another school or for every school.
    """
    if request.method == "POST":
        require_permission(request.user, MANAGE_DISCUSSIONS)
        data = request.data.copy()
        if not resolve_permissions(request.user).is_admin:
            if not request.user.school_id:
                raise PermissionDenied("Join a school before adding categories.")
            data["school"] = request.user.school_id
        form = DiscussionCategoryForm(data)
        if not form.is_valid():
            return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
        category = form.save(commit=False)
        category.created_by = request.user
        category.save()
        return Response(DiscussionCategorySerializer(category).data, status=status.HTTP_201_CREATED)

    custom = DiscussionCategory.visible_to(request.user.school_id)
    return Response({
        "builtin": [{"name": value, "label": label} for value, label in Discussion.CATEGORY_CHOICES],
        "custom": DiscussionCategorySerializer(custom, many=True).data,
    })


@api_view(["DELETE"])
@permission_classes([HasPermission(MANAGE_DISCUSSIONS)])
def category_delete(request, pk: int):
    """Delete a category; threads already filed under it keep the name."""
    category = get_object_or_404(DiscussionCategory, pk=pk)
    if not resolve_permissions(request.user).is_admin and (
        category.school_id is None or category.school_id != request.user.school_id
    ):
        raise PermissionDenied("You can only delete categories of your own school.")
    category.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
