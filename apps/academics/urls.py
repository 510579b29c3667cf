# academics/urls.py

from django.urls import path
from . import views

app_name = 'academics'

urlpatterns = [
    # =============================================================================
    # STRUCTURE
    # =============================================================================
    path('classes/', views.class_view, name='class_list'),
    path('classes/<uuid:pk>/', views.class_view, name='class_detail'),
    path('classes/<uuid:pk>/subjects/', views.class_subjects, name='class_subjects'),
    path('sections/', views.section_view, name='section_list'),
    path('sections/<uuid:pk>/', views.section_view, name='section_detail'),
    path('subjects/', views.subject_list, name='subject_list'),
    path('subjects/<uuid:pk>/', views.subject_detail, name='subject_detail'),
    path('change-log/', views.change_log, name='change_log'),

    # =============================================================================
    # EXAMS & MARKS
    # =============================================================================
    path('exams/', views.exam_view, name='exam_list'),
    path('exams/<uuid:pk>/', views.exam_view, name='exam_detail'),
    path('exams/<uuid:pk>/publish/', views.exam_publish, name='exam_publish'),
    path('exams/<uuid:pk>/subjects/', views.exam_subjects, name='exam_subjects'),
    path('exams/<uuid:pk>/marks/', views.marks_entry, name='marks_entry'),
    path('exams/<uuid:pk>/report-cards/', views.report_card, name='report_card'),

    # =============================================================================
    # ATTENDANCE
    # =============================================================================
    path('attendance/', views.attendance_day, name='attendance_day'),
    path('attendance/upload/', views.attendance_upload, name='attendance_upload'),
]
