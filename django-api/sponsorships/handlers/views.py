"""HTTP handlers (views) for sponsorships - handle HTTP concerns only."""

from django.conf import settings
from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from allocation.stores.django_store import DjangoAccessStore
from sponsorships.domain.models import SponsorshipStatus
from sponsorships.handlers.serializers import (
    AvailableSponsorshipSerializer,
    BatchResultSerializer,
    LinkByCodeRequestSerializer,
    LinkedSponsorshipSerializer,
    LinkResultSerializer,
    SponsorshipBatchRequestSerializer,
    SponsorshipListQuerySerializer,
    SponsorshipSerializer,
    SponsorshipUpdateSerializer,
)
from sponsorships.services.sponsorship_service import SponsorshipService
from sponsorships.stores.django_store import DjangoSponsorshipStore


def sponsorship_service() -> SponsorshipService:
    return SponsorshipService(
        DjangoSponsorshipStore(),
        DjangoAccessStore(),
        code_max_attempts=settings.SPONSORSHIP_CODE_MAX_ATTEMPTS,
    )


class SponsorshipPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100


class SponsorshipBatchView(APIView):
    """Handler for POST /api/public/events/{event_id}/sponsorships"""

    def post(self, request: Request, event_id: str) -> Response:
        serializer = SponsorshipBatchRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        sponsor, beneficiaries = serializer.to_domain()
        result = sponsorship_service().create_batch(
            event_id, sponsor, beneficiaries, serializer.validated_data["form_data"]
        )
        return Response(BatchResultSerializer(result).data, status=status.HTTP_201_CREATED)


class EventSponsorshipListView(APIView):
    """Handler for GET /api/events/{event_id}/sponsorships"""

    def get(self, request: Request, event_id: str) -> Response:
        query = SponsorshipListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        sponsorships = sponsorship_service().list_sponsorships(
            event_id,
            status=SponsorshipStatus(params["status"]) if params.get("status") else None,
            search=params.get("search") or None,
            sort_by=params["sort_by"],
            descending=params["sort_order"] == "desc",
        )
        paginator = SponsorshipPagination()
        page = paginator.paginate_queryset(sponsorships, request, view=self)
        return paginator.get_paginated_response(SponsorshipSerializer(page, many=True).data)


class SponsorshipDetailView(APIView):
    """Handler for GET/PATCH/DELETE /api/sponsorships/{sponsorship_id}"""

    def get(self, request: Request, sponsorship_id: str) -> Response:
        return Response(SponsorshipSerializer(sponsorship_service().get_sponsorship(sponsorship_id)).data)

    def patch(self, request: Request, sponsorship_id: str) -> Response:
        serializer = SponsorshipUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        values = dict(serializer.validated_data)
        for name in ("beneficiary_phone", "beneficiary_address"):
            if name in values:
                values[name] = values[name] or None
        sponsorship = sponsorship_service().update_sponsorship(sponsorship_id, values)
        return Response(SponsorshipSerializer(sponsorship).data)

    def delete(self, request: Request, sponsorship_id: str) -> Response:
        sponsorship_service().delete_sponsorship(sponsorship_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class SponsorshipCancelView(APIView):
    """Handler for POST /api/sponsorships/{sponsorship_id}/cancel"""

    def post(self, request: Request, sponsorship_id: str) -> Response:
        sponsorship = sponsorship_service().cancel_sponsorship(sponsorship_id)
        return Response(SponsorshipSerializer(sponsorship).data)


class RegistrationSponsorshipsView(APIView):
    """Handler for GET/POST /api/registrations/{registration_id}/sponsorships"""

    def get(self, request: Request, registration_id: str) -> Response:
        linked = sponsorship_service().get_linked_sponsorships(registration_id)
        return Response(LinkedSponsorshipSerializer(linked, many=True).data)

    def post(self, request: Request, registration_id: str) -> Response:
        serializer = LinkByCodeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = sponsorship_service().link_sponsorship_by_code(
            registration_id,
            serializer.validated_data["code"],
            serializer.validated_data["applied_by"],
        )
        return Response(LinkResultSerializer(result).data, status=status.HTTP_201_CREATED)


class RegistrationSponsorshipDetailView(APIView):
    """Handler for POST/DELETE /api/registrations/{registration_id}/sponsorships/{sponsorship_id}"""

    def post(self, request: Request, registration_id: str, sponsorship_id: str) -> Response:
        applied_by = str(request.data.get("applied_by") or "ADMIN")
        result = sponsorship_service().link_sponsorship(registration_id, sponsorship_id, applied_by)
        return Response(LinkResultSerializer(result).data, status=status.HTTP_201_CREATED)

    def delete(self, request: Request, registration_id: str, sponsorship_id: str) -> Response:
        sponsorship_amount = sponsorship_service().unlink_sponsorship(registration_id, sponsorship_id)
        return Response({"sponsorship_amount": str(sponsorship_amount)})


class AvailableSponsorshipsView(APIView):
    """Handler for GET /api/events/{event_id}/registrations/{registration_id}/available-sponsorships"""

    def get(self, request: Request, event_id: str, registration_id: str) -> Response:
        available = sponsorship_service().get_available_sponsorships(event_id, registration_id)
        return Response(AvailableSponsorshipSerializer(available, many=True).data)
