from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from accounts.notifications import notify_menu_update
from core.exceptions import ScrapeError
from core.forms import SchoolFilterForm
from core.models import MANAGE_MENUS
from core.permissions import HasPermission, require_permission
from menus import scraper
from menus.forms import MealDietaryTagForm, MealScheduleForm, ScheduleRangeForm, ScrapeForm
from menus.models import MealDietaryTag, MealSchedule
from menus.serializers import MealDietaryTagSerializer, MealScheduleSerializer
from menus.services import weekly_menu


@api_view(["GET"])
def week(request):
    """This week's menu for the user's school (next week on weekends)."""
    form = SchoolFilterForm(request.query_params)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
    school_id = form.school_id(default=request.user.school_id)
    return Response(weekly_menu(school_id, timezone.localdate()))


@api_view(["GET"])
def schedule_list(request):
    """Raw schedules of ``?school=`` between ``?start=`` and ``?end=`` (ISO dates)."""
    form = ScheduleRangeForm(request.query_params)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)

    schedules = MealSchedule.objects.all()
    school_id = form.school_id(default=request.user.school_id)
    if school_id:
        schedules = schedules.filter(school_id=school_id)
    if form.cleaned_data["start"]:
        schedules = schedules.filter(meal_date__gte=form.cleaned_data["start"])
    if form.cleaned_data["end"]:
        schedules = schedules.filter(meal_date__lte=form.cleaned_data["end"])
    return Response(MealScheduleSerializer(schedules, many=True).data)


@api_view(["POST"])
@permission_classes([HasPermission(MANAGE_MENUS)])
def upsert_schedule(request):
    """Create or replace the menu for one school, date and meal type."""
    form = MealScheduleForm(request.data)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
    data = form.cleaned_data
    schedule, created = MealSchedule.objects.update_or_create(
        school=data["school"],
        meal_date=data["meal_date"],
        meal_type=data["meal_type"],
        defaults={"menu_items": data["menu_items"]},
    )
    if created:
        notify_menu_update(schedule.school_id, schedule.meal_date)
    return Response(
        MealScheduleSerializer(schedule).data,
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@api_view(["POST"])
@permission_classes([HasPermission(MANAGE_MENUS)])
def import_from_url(request):
    """Scrape a MealViewer page and return the items found (nothing is saved)."""
    form = ScrapeForm(request.data)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        result = scraper.scrape(
            form.cleaned_data["url"],
            multi_day=form.cleaned_data["multi_day"],
            today=timezone.localdate(),
        )
    except ScrapeError as exc:
        return Response({"success": False, "error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    return Response({"success": True, **result})


@api_view(["GET", "POST"])
def dietary_tag_list(request):
    """Shared tags plus those of ``?school=`` (default: the user's school)."""
    if request.method == "POST":
        require_permission(request.user, MANAGE_MENUS)
        form = MealDietaryTagForm(request.data)
        if not form.is_valid():
            return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
        tag = form.save()
        return Response(MealDietaryTagSerializer(tag).data, status=status.HTTP_201_CREATED)

    form = SchoolFilterForm(request.query_params)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
    school_id = form.school_id(default=request.user.school_id)
    tags = MealDietaryTag.objects.filter(school__isnull=True)
    if school_id:
        tags = MealDietaryTag.objects.filter(Q(school_id=school_id) | Q(school__isnull=True))
    return Response(MealDietaryTagSerializer(tags, many=True).data)


@api_view(["DELETE"])
@permission_classes([HasPermission(MANAGE_MENUS)])
def dietary_tag_delete(request, pk: int):
    tag = get_object_or_404(MealDietaryTag, pk=pk)
    tag.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
