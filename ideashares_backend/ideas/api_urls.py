# ideas/api_urls.py
from django.urls import path
from .api_views import ideas, idea_investments

urlpatterns = [
    path('', ideas, name='api-ideas'),
    path('<int:pk>/investments/', idea_investments, name='api-idea-investments'),
]
