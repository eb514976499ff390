from django.http import JsonResponse
from django.urls import include, path

urlpatterns = [
    path("", include("identity.urls")),
]


def route_not_found(request, exception=None):
    return JsonResponse({"error": "Route not found"}, status=404)


def server_error(request):
    return JsonResponse({"error": "Internal server error"}, status=500)


handler404 = route_not_found
handler500 = server_error
