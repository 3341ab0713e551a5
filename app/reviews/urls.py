"""
URL mappings for the reviews app.
"""

from django.urls import path, include

from rest_framework.routers import DefaultRouter

from reviews import views

router = DefaultRouter()
router.register("reviews", views.ReviewViewSet)

app_name = "reviews"

urlpatterns = [
    path("", include(router.urls)),
]
