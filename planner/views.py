from django.forms.models import model_to_dict
from django.http import Http404, HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from planner import exports
from planner.forms import ClassScheduleForm, TaskForm
from planner.models import ClassSchedule, Task
from planner.serializers import ClassScheduleSerializer, TaskSerializer


def owned_list_create(request, model, form_class, serializer_class):
    if request.method == "GET":
        objs = model.objects.filter(user=request.user)
        return Response(serializer_class(objs, many=True).data)

    form = form_class(request.data, user=request.user)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
    obj = form.save()
    return Response(serializer_class(obj).data, status=status.HTTP_201_CREATED)


def owned_detail(request, pk, model, form_class, serializer_class):
    # Scoped to the owner: other users' rows are a 404.
    obj = get_object_or_404(model, pk=pk, user=request.user)
    if request.method == "GET":
        return Response(serializer_class(obj).data)
    if request.method == "DELETE":
        obj.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    data = model_to_dict(obj, fields=form_class._meta.fields)
    data.update(request.data)
    form = form_class(data, instance=obj, user=request.user)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
    return Response(serializer_class(form.save()).data)


@api_view(["GET", "POST"])
def task_list(request):
    return owned_list_create(request, Task, TaskForm, TaskSerializer)


@api_view(["GET", "PATCH", "DELETE"])
def task_detail(request, pk: int):
    return owned_detail(request, pk, Task, TaskForm, TaskSerializer)


@api_view(["GET", "POST"])
def class_list(request):
    return owned_list_create(request, ClassSchedule, ClassScheduleForm, ClassScheduleSerializer)


@api_view(["GET", "PATCH", "DELETE"])
def class_detail(request, pk: int):
    return owned_detail(request, pk, ClassSchedule, ClassScheduleForm, ClassScheduleSerializer)


def _dataset(name):
    try:
        return exports.DATASETS[name]
    except KeyError:
        raise Http404(f"Unknown dataset {name!r}")


@api_view(["GET"])
def export_data(request, dataset: str, fmt: str):
    """Download the user's tasks or classes as ``json`` or ``csv``."""
    model, _, fields = _dataset(dataset)
    rows = exports.export_rows(model.objects.filter(user=request.user), fields)
    if fmt == "json":
        body, content_type = exports.to_json(rows), "application/json"
    elif fmt == "csv":
        body, content_type = exports.to_csv(rows, fields), "text/csv"
    else:
        raise Http404(f"Unknown export format {fmt!r}")

    response = HttpResponse(body, content_type=content_type)
    response["Content-Disposition"] = f'attachment; filename="{dataset}.{fmt}"'
    return response


@api_view(["POST"])
def import_data(request, dataset: str):
    """Import tasks or classes from an uploaded ``.json`` / ``.csv`` file or a JSON array body."""
    _, form_class, _ = _dataset(dataset)
    upload = request.FILES.get("file")
    try:
        if upload is not None:
            text = upload.read().decode("utf-8-sig")
            if upload.name.lower().endswith(".json"):
                rows = exports.parse_json(text)
            else:
                rows = exports.parse_csv(text)
        elif isinstance(request.data, list):
            rows = request.data
        else:
            raise exports.ImportFormatError("Upload a .json or .csv file, or send a JSON array.")
    except (exports.ImportFormatError, UnicodeDecodeError) as exc:
        return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(exports.import_rows(rows, form_class, request.user))


@api_view(["GET"])
def calendar(request):
    """The user's dated tasks and weekly classes as an ``.ics`` download."""
    now = timezone.now()
    body = exports.build_calendar(
        Task.objects.filter(user=request.user, due_date__isnull=False),
        ClassSchedule.objects.filter(user=request.user),
        now,
    )
    response = HttpResponse(body, content_type="text/calendar; charset=utf-8")
    response["Content-Disposition"] = (
        f'attachment; filename="lunchlit-calendar-{now:%Y-%m-%d}.ics"'
    )
    return response
