import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .cluster_view import build_cluster_view
from .exceptions import ValidationError
from .reconciler import Reconciler
from .serializers import ClusterViewSerializer

logger = logging.getLogger(__name__)


class ServiceIndexAPIView(APIView):

    def get(self, request):
        return Response(
            {
                "message": "Bitespeed Identity Reconciliation API",
                "endpoints": {
                    "identify": "POST /identify",
                },
            },
            status=status.HTTP_200_OK,
        )


class IdentifyAPIView(APIView):
    reconciler_class = Reconciler

    def post(self, request):
        """
        Handles the /identify endpoint.
        Consolidates contact information based on email or phone number.
        """
        logger.info(f"Identify request received with data: {request.data}")

        if not isinstance(request.data, dict):
            raise ValidationError("Request body must be a JSON object.")

        cluster = self.reconciler_class().identify(
            email=request.data.get("email"),
            phone_number=request.data.get("phoneNumber"),
        )

        view = build_cluster_view(cluster.primary_id, cluster.contacts, cluster.secondaries)
        return Response(
            {"contact": ClusterViewSerializer(view).data}, status=status.HTTP_200_OK
        )
