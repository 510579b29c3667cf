# students/urls.py

from django.urls import path
from . import views

app_name = 'students'

urlpatterns = [
    path('', views.student_list, name='student_list'),
    path('<uuid:pk>/', views.student_detail, name='student_detail'),
    path('parents/<uuid:pk>/account/', views.parent_account, name='parent_account'),

    # CSV import / export
    path('csv/template/', views.student_csv_template, name='csv_template'),
    path('csv/import/', views.student_import, name='csv_import'),
    path('csv/export/', views.student_csv_export, name='csv_export'),
]
