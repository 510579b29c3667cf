# accounts/admin.py

from django.contrib import admin
from django.contrib.auth.models import User
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import School, UserProfile


# =============================================================================
# INLINE ADMINS
# =============================================================================

class UserProfileInline(admin.StackedInline):
    """Inline admin for UserProfile"""
    model = UserProfile
    can_delete = False
    verbose_name_plural = 'Profile Information'
    fields = ('school', 'role', 'full_name', 'phone', 'is_active')


class UserAdmin(BaseUserAdmin):
    inlines = (UserProfileInline,)
    list_display = ('username', 'email', 'get_role', 'get_school', 'is_active')

    @admin.display(description='Role')
    def get_role(self, obj):
        profile = getattr(obj, 'profile', None)
        return profile.get_role_display() if profile else '-'

    @admin.display(description='School')
    def get_school(self, obj):
        profile = getattr(obj, 'profile', None)
        return profile.school if profile and profile.school else '-'


admin.site.unregister(User)
admin.site.register(User, UserAdmin)


@admin.register(School)
class SchoolAdmin(admin.ModelAdmin):
    list_display = ('name', 'board', 'city', 'status', 'onboarded_at')
    list_filter = ('status', 'board')
    search_fields = ('name', 'city', 'contact_email')
