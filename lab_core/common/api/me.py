# lab_core/common/api/me.py

from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from lab_core.common.permissions import _user_roles, capabilities_for


class MeView(APIView):
    """
    The acting identity as the lab-order services see it.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user
        return Response(
            {
                "user": {
                    "id": user.id,
                    "username": getattr(user, "username", None),
                    "email": getattr(user, "email", None),
                    "is_superuser": bool(getattr(user, "is_superuser", False)),
                },
                "roles": sorted(_user_roles(user)),
                "capabilities": sorted(capabilities_for(user)),
            },
            status=status.HTTP_200_OK,
        )
