import logging

from django.db.models import Count, Q
from django.forms.models import model_to_dict
from django.http import Http404
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from core.forms import SchoolFilterForm
from core.models import VERIFY_ENTRIES
from core.permissions import HasPermission
from planner.views import owned_detail, owned_list_create
from portfolio.forms import (
    BragSheetAcademicsForm,
    BragSheetEntryForm,
    InsightAnswerForm,
    StudentGoalForm,
    TargetSchoolForm,
    VerificationForm,
)
from portfolio.models import (
    INSIGHT_QUESTIONS,
    BragSheetAcademics,
    BragSheetEntry,
    BragSheetInsight,
    StudentGoal,
    TargetSchool,
)
from portfolio.serializers import (
    BragSheetAcademicsSerializer,
    BragSheetEntrySerializer,
    PendingEntrySerializer,
    StudentGoalSerializer,
    TargetSchoolSerializer,
)

logger = logging.getLogger(__name__)


@api_view(["GET", "POST"])
def entry_list(request):
    if request.method == "GET":
        entries = BragSheetEntry.objects.filter(user=request.user)
        category = request.query_params.get("category")
        if category:
            entries = entries.filter(category=category)
        return Response(BragSheetEntrySerializer(entries, many=True).data)

    form = BragSheetEntryForm(request.data, user=request.user)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
    entry = form.save()
    return Response(BragSheetEntrySerializer(entry).data, status=status.HTTP_201_CREATED)


@api_view(["GET", "PATCH", "DELETE"])
def entry_detail(request, pk: int):
    entry = get_object_or_404(BragSheetEntry, pk=pk, user=request.user)
    if request.method == "GET":
        return Response(BragSheetEntrySerializer(entry).data)
    if request.method == "DELETE":
        entry.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    data = model_to_dict(entry, fields=BragSheetEntryForm._meta.fields)
    data.update(request.data)
    form = BragSheetEntryForm(data, instance=entry, user=request.user)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
    return Response(BragSheetEntrySerializer(form.save()).data)


@api_view(["GET"])
@permission_classes([HasPermission(VERIFY_ENTRIES)])
def verification_queue(request):
    """Entries awaiting verification, oldest first; ``?school=<id>`` narrows the queue."""
    form = SchoolFilterForm(request.query_params)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
    entries = (
        BragSheetEntry.objects.filter(verification_status=BragSheetEntry.PENDING)
        .select_related("user")
        .order_by("created_at", "id")
    )
    school_id = form.school_id()
    if school_id:
        entries = entries.filter(user__school_id=school_id)
    return Response(PendingEntrySerializer(entries, many=True).data)


@api_view(["POST"])
@permission_classes([HasPermission(VERIFY_ENTRIES)])
def verify_entry(request, pk: int):
    """Mark an entry verified or rejected with optional notes."""
    entry = get_object_or_404(BragSheetEntry, pk=pk)
    form = VerificationForm(request.data)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)

    entry.verification_status = form.cleaned_data["status"]
    entry.verification_notes = form.cleaned_data["notes"] or None
    entry.verified_by = request.user
    entry.verified_at = timezone.now()
    entry.save(update_fields=[
        "verification_status",
        "verification_notes",
        "verified_by",
        "verified_at",
        "updated_at",
    ])
    logger.info(
        "Entry %s %s by user %s", entry.pk, entry.verification_status, request.user.pk,
    )
    return Response(BragSheetEntrySerializer(entry).data)


@api_view(["GET", "POST"])
def goal_list(request):
    return owned_list_create(request, StudentGoal, StudentGoalForm, StudentGoalSerializer)


@api_view(["GET", "PATCH", "DELETE"])
def goal_detail(request, pk: int):
    return owned_detail(request, pk, StudentGoal, StudentGoalForm, StudentGoalSerializer)


@api_view(["GET", "POST"])
def target_school_list(request):
    return owned_list_create(request, TargetSchool, TargetSchoolForm, TargetSchoolSerializer)


@api_view(["GET", "PATCH", "DELETE"])
def target_school_detail(request, pk: int):
    return owned_detail(request, pk, TargetSchool, TargetSchoolForm, TargetSchoolSerializer)


@api_view(["GET", "PUT"])
def academics(request):
    """The student's GPA, test scores and courses; PUT replaces them."""
    record = BragSheetAcademics.objects.filter(user=request.user).first()
    if request.method == "GET":
        if record is None:
            record = BragSheetAcademics(user=request.user)
        return Response(BragSheetAcademicsSerializer(record).data)

    form = BragSheetAcademicsForm(request.data, instance=record, user=request.user)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
    return Response(BragSheetAcademicsSerializer(form.save()).data)


def _insight_payload(key, question, insight):
    return {
        "question_key": key,
        "question": question,
        "answer": insight.answer if insight else None,
        "updated_at": insight.updated_at if insight else None,
    }


@api_view(["GET"])
def insight_list(request):
    """Every recommender question with the student's answer (None when unanswered)."""
    answers = {
        insight.question_key: insight
        for insight in BragSheetInsight.objects.filter(user=request.user)
    }
    return Response([
        _insight_payload(key, question, answers.get(key))
        for key, question in INSIGHT_QUESTIONS
    ])


@api_view(["PUT"])
def insight_answer(request, question_key: str):
    questions = dict(INSIGHT_QUESTIONS)
    if question_key not in questions:
        raise Http404(f"Unknown question {question_key!r}")
    form = InsightAnswerForm(request.data)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)

    insight, _ = BragSheetInsight.objects.update_or_create(
        user=request.user,
        question_key=question_key,
        defaults={"answer": form.cleaned_data["answer"].strip() or None},
    )
    return Response(_insight_payload(question_key, questions[question_key], insight))


@api_view(["GET"])
def overview(request):
    """Counts behind the portfolio dashboard."""
    user = request.user
    goals = StudentGoal.objects.filter(user=user).aggregate(
        total=Count("id"),
        completed=Count("id", filter=Q(status=StudentGoal.COMPLETED)),
        in_progress=Count("id", filter=Q(status=StudentGoal.IN_PROGRESS)),
    )
    schools = TargetSchool.objects.filter(user=user).aggregate(
        total=Count("id"),
        reaches=Count("id", filter=Q(is_reach=True)),
        matches=Count("id", filter=Q(is_match=True)),
        safeties=Count("id", filter=Q(is_safety=True)),
        accepted=Count("id", filter=Q(status=TargetSchool.ACCEPTED)),
    )
    entries = BragSheetEntry.objects.filter(user=user).aggregate(
        total=Count("id"),
        verified=Count("id", filter=Q(verification_status=BragSheetEntry.VERIFIED)),
    )
    answered = (
        BragSheetInsight.objects.filter(user=user)
        .exclude(answer__isnull=True)
        .exclude(answer="")
        .count()
    )
    return Response({
        "goals": goals,
        "schools": schools,
        "entries": entries,
        "insights": {"answered": answered, "total": len(INSIGHT_QUESTIONS)},
        "has_academics": BragSheetAcademics.objects.filter(user=user).exists(),
    })
