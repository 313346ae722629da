"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Leave domain error mapping to handlers.errors
- Never contain business logic
"""

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from allocation.domain.models import AccessType, Selection
from allocation.domain.value_objects import AccessItemId
from allocation.handlers.serializers import (
    AccessItemInputSerializer,
    AccessItemSerializer,
    GroupedAccessRequestSerializer,
    GroupedAccessSerializer,
    ValidateSelectionsRequestSerializer,
    ValidationResultSerializer,
)
from allocation.services.access_service import AccessService
from allocation.stores.django_store import DjangoAccessStore


def access_service() -> AccessService:
    return AccessService(DjangoAccessStore())


def _parse_bool(value: str | None) -> bool | None:
    if value == "true":
        return True
    if value == "false":
        return False
    return None


class EventAccessListView(APIView):
    """Handler for GET/POST /api/events/{event_id}/access"""

    def get(self, request: Request, event_id: str) -> Response:
        access_type = request.query_params.get("type")
        items = access_service().list_access(
            event_id,
            active=_parse_bool(request.query_params.get("active")),
            access_type=AccessType(access_type) if access_type in AccessType.__members__ else None,
        )
        return Response(AccessItemSerializer(items, many=True).data)

    def post(self, request: Request, event_id: str) -> Response:
        serializer = AccessItemInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        values, required_ids = serializer.split()
        access = access_service().create_access(event_id, values, required_ids or [])
        return Response(AccessItemSerializer(access).data, status=status.HTTP_201_CREATED)


class AccessDetailView(APIView):
    """Handler for GET/PATCH/DELETE /api/access/{access_id}"""

    def get(self, request: Request, access_id: str) -> Response:
        return Response(AccessItemSerializer(access_service().get_access(access_id)).data)

    def patch(self, request: Request, access_id: str) -> Response:
        serializer = AccessItemInputSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        values, required_ids = serializer.split()
        access = access_service().update_access(access_id, values, required_ids)
        return Response(AccessItemSerializer(access).data)

    def delete(self, request: Request, access_id: str) -> Response:
        access_service().delete_access(access_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class GroupedAccessView(APIView):
    """Handler for POST /api/public/events/{event_id}/access/grouped"""

    def post(self, request: Request, event_id: str) -> Response:
        serializer = GroupedAccessRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        grouped = access_service().get_grouped_access(
            event_id,
            serializer.validated_data["form_data"],
            [str(value) for value in serializer.validated_data["selected_access_ids"]],
        )
        return Response(GroupedAccessSerializer(grouped).data)


class ValidateSelectionsView(APIView):
    """Handler for POST /api/public/events/{event_id}/access/validate"""

    def post(self, request: Request, event_id: str) -> Response:
        serializer = ValidateSelectionsRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        selections = [
            Selection(access_id=AccessItemId(entry["access_id"]), quantity=entry["quantity"])
            for entry in serializer.validated_data["selections"]
        ]
        result = access_service().validate_selections(
            event_id, selections, serializer.validated_data["form_data"]
        )
        return Response(ValidationResultSerializer(result).data)
