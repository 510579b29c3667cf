# accounts/urls.py

from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [
    path('login/', views.login_view, name='login'),
    path('logout/', views.logout_view, name='logout'),
    path('me/', views.whoami, name='whoami'),
    path('session-state/', views.session_state, name='session_state'),
    path('schools/', views.school_list, name='school_list'),
]
