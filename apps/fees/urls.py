# fees/urls.py

from django.urls import path
from . import views

app_name = 'fees'

urlpatterns = [
    # =============================================================================
    # DASHBOARD & OVERVIEW
    # =============================================================================
    path('', views.fees_dashboard, name='dashboard'),
    path('overview/', views.fee_overview_list, name='overview'),
    path('backfill/', views.backfill_fees, name='backfill'),

    # =============================================================================
    # INSTALLMENTS & PAYMENTS
    # =============================================================================
    path('students/<uuid:student_id>/installments/', views.student_installments, name='student_installments'),
    path('installments/<uuid:installment_id>/pay/', views.pay_installment, name='pay_installment'),
    path('records/<uuid:pk>/collect/', views.collect_payment, name='collect_payment'),
    path('records/<uuid:pk>/discount/', views.apply_discount, name='apply_discount'),
    path('payments/<uuid:pk>/receipt/', views.payment_receipt, name='payment_receipt'),

    # =============================================================================
    # FEE DEFINITIONS
    # =============================================================================
    path('types/', views.fee_type_list, name='fee_type_list'),
    path('types/<uuid:pk>/', views.fee_type_detail, name='fee_type_detail'),
    path('matrix/', views.fee_matrix, name='fee_matrix'),
    path('matrix/<uuid:pk>/', views.fee_matrix_delete, name='fee_matrix_delete'),
]
