from django.forms.models import model_to_dict
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from core.forms import SchoolFilterForm
from core.models import MANAGE_STUDY_HALLS
from core.permissions import HasPermission, require_permission
from studyhalls.forms import OccupancyForm, StudyHallForm
from studyhalls.models import StudyHall
from studyhalls.serializers import StudyHallSerializer


@api_view(["GET", "POST"])
def study_hall_list(request):
    """Study halls of ``?school=<id>`` (default: the user's school), or create one."""
    if request.method == "POST":
        require_permission(request.user, MANAGE_STUDY_HALLS)
        form = StudyHallForm(request.data)
        if not form.is_valid():
            return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
        hall = form.save()
        return Response(StudyHallSerializer(hall).data, status=status.HTTP_201_CREATED)

    form = SchoolFilterForm(request.query_params)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
    halls = StudyHall.objects.all()
    school_id = form.school_id(default=request.user.school_id)
    if school_id:
        halls = halls.filter(school_id=school_id)
    return Response(StudyHallSerializer(halls, many=True).data)


@api_view(["GET", "PATCH", "DELETE"])
def study_hall_detail(request, pk: int):
    hall = get_object_or_404(StudyHall, pk=pk)
    if request.method == "GET":
        return Response(StudyHallSerializer(hall).data)

    require_permission(request.user, MANAGE_STUDY_HALLS)
    if request.method == "DELETE":
        hall.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    data = model_to_dict(hall, fields=StudyHallForm._meta.fields)
    data.update(request.data)
    form = StudyHallForm(data, instance=hall)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
    hall = form.save()
    return Response(StudyHallSerializer(hall).data)


@api_view(["POST"])
@permission_classes([HasPermission(MANAGE_STUDY_HALLS)])
def update_occupancy(request, pk: int):
    """Set the current head count; availability follows from capacity."""
    hall = get_object_or_404(StudyHall, pk=pk)
    form = OccupancyForm(request.data, hall=hall)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
    hall.set_occupancy(form.cleaned_data["current_occupancy"])
    hall.save(update_fields=["current_occupancy", "is_available", "updated_at"])
    return Response(StudyHallSerializer(hall).data)
