from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from plugins.django_interface.permissions import IsClinicMember


class HealthCheckView(APIView):
    """
    Rota GET /api/healthz/: retorna status 200 se a API estiver viva.
    """
    permission_classes = []
    authentication_classes = []

    def get(self, request):
        return Response({"status": "ok"}, status=status.HTTP_200_OK)


class MeView(APIView):
    """Dados do usuário logado e do seu vínculo com a clínica."""
    permission_classes = [IsClinicMember]

    def get(self, request):
        member = request.clinic_member
        return Response({
            "user_id": request.user.id,
            "username": request.user.get_username(),
            "clinic_id": str(member.clinic_id),
            "role": member.role,
            "professional_profile_id": str(member.professional_profile_id) if member.professional_profile_id else None,
        })
