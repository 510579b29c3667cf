"""
URL configuration for the schooldesk project.
"""
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    # Django admin
    path('admin/', admin.site.urls),

    # Backend procedures - /api/rpc/<name>/
    path('api/', include(('core.urls', 'core'), namespace='core')),

    # Accounts app - login, session state, schools
    path('', include(('accounts.urls', 'accounts'), namespace='accounts')),

    # Students app
    path('students/', include(('students.urls', 'students'), namespace='students')),

    # Academics app - classes, subjects, exams, marks, attendance
    path('academics/', include(('academics.urls', 'academics'), namespace='academics')),

    # HR app - educators
    path('hr/', include(('hr.urls', 'hr'), namespace='hr')),

    # Fees app - installments, payments, discounts
    path('fees/', include(('fees.urls', 'fees'), namespace='fees')),

    # Announcements app
    path('announcements/', include(('announcements.urls', 'announcements'), namespace='announcements')),

    # Admissions app - leads and applications
    path('admissions/', include(('admissions.urls', 'admissions'), namespace='admissions')),

    # Documents app - ID cards and certificates
    path('documents/', include(('documents.urls', 'documents'), namespace='documents')),

    # Reports app
    path('reports/', include(('reports.urls', 'reports'), namespace='reports')),

    # Expenses app
    path('expenses/', include(('expenses.urls', 'expenses'), namespace='expenses')),

    # Parent portal - children, fees, results, service tickets
    path('portal/', include(('portal.urls', 'portal'), namespace='portal')),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
