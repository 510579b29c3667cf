# portal/urls.py

from django.urls import path
from . import views

app_name = 'portal'

urlpatterns = [
    # =============================================================================
    # PARENT VIEWS
    # =============================================================================
    path('children/', views.children, name='children'),
    path('fees/', views.child_fees, name='child_fees'),
    path('results/', views.child_results, name='child_results'),
    path('tickets/', views.tickets, name='tickets'),
    path('tickets/<uuid:pk>/', views.ticket_detail, name='ticket_detail'),

    # =============================================================================
    # STAFF
    # =============================================================================
    path('support/', views.support_queue, name='support_queue'),
    path('support/<uuid:pk>/status/', views.ticket_status, name='ticket_status'),
]
