from django.urls import path, re_path

from .views import IdentifyAPIView, ServiceIndexAPIView

urlpatterns = [
    path("", ServiceIndexAPIView.as_view(), name="index"),
    re_path(r"^identify/?$", IdentifyAPIView.as_view(), name="identify"),
]
