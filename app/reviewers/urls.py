"""
URL mappings for the reviewers app.
"""

from django.urls import path, include

from rest_framework.routers import DefaultRouter

from reviewers import views

router = DefaultRouter()
router.register("reviewers", views.ReviewerProfileViewSet)
router.register("team-members", views.TeamMemberViewSet)
router.register("coi-overrides", views.COIOverrideViewSet)

app_name = "reviewers"

urlpatterns = [
    path("", include(router.urls)),
]
