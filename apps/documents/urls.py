# documents/urls.py

from django.urls import path
from . import views

app_name = 'documents'

urlpatterns = [
    # =============================================================================
    # ID CARDS
    # =============================================================================
    path('id-cards/settings/', views.id_card_settings, name='id_card_settings'),
    path('id-cards/generate/', views.id_card_generate, name='id_card_generate'),
    path('id-cards/history/', views.id_card_history, name='id_card_history'),

    # =============================================================================
    # CERTIFICATES
    # =============================================================================
    path('awards/', views.award_list, name='award_list'),
    path('awards/issue/', views.award_issue, name='award_issue'),
    path('awards/<uuid:pk>/review/', views.award_review, name='award_review'),
    path('awards/<uuid:pk>/preview/', views.award_preview, name='award_preview'),
    path('award-types/', views.award_type_list, name='award_type_list'),
    path('templates/', views.template_list, name='template_list'),
    path('templates/<uuid:pk>/default/', views.template_default, name='template_default'),
]
