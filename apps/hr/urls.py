# hr/urls.py

from django.urls import path
from . import views

app_name = 'hr'

urlpatterns = [
    path('educators/', views.educator_list, name='educator_list'),
    path('educators/<uuid:pk>/', views.educator_detail, name='educator_detail'),
    path('educators/csv/template/', views.educator_csv_template, name='csv_template'),
    path('educators/csv/import/', views.educator_import, name='csv_import'),
    path('educators/csv/export/', views.educator_csv_export, name='csv_export'),
]
