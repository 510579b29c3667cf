# admissions/urls.py

from django.urls import path
from . import views

app_name = 'admissions'

urlpatterns = [
    path('leads/', views.lead_list, name='lead_list'),
    path('leads/<uuid:pk>/', views.lead_detail, name='lead_detail'),
    path('leads/<uuid:pk>/visits/', views.lead_visit, name='lead_visit'),
    path('leads/<uuid:pk>/stage/', views.lead_stage, name='lead_stage'),
    path('leads/<uuid:pk>/application/', views.lead_application, name='lead_application'),
    path('applications/', views.application_list, name='application_list'),
    path('applications/<uuid:pk>/decision/', views.application_decision, name='application_decision'),
    path('funnel/', views.funnel, name='funnel'),
    path('funnel/setup/', views.funnel_setup, name='funnel_setup'),
]
