# announcements/urls.py

from django.urls import path
from . import views

app_name = 'announcements'

urlpatterns = [
    path('', views.announcement_list, name='list'),
    path('feed/', views.announcement_feed, name='feed'),
    path('<uuid:pk>/', views.announcement_detail, name='detail'),
    path('<uuid:pk>/toggle/', views.announcement_toggle, name='toggle'),
]
