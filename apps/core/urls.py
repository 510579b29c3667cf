# core/urls.py

from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    path('rpc/<str:name>/', views.rpc_call, name='rpc'),
]
