from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    fieldsets = BaseUserAdmin.fieldsets + (
        ('RepairHub', {'fields': ('name', 'default_location')}),
    )
    list_display = ['username', 'name', 'email', 'default_location', 'is_staff']
