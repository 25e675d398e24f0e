from django.contrib import admin

from .models import DiscountCode


@admin.register(DiscountCode)
class DiscountCodeAdmin(admin.ModelAdmin):
    list_display = ['code', 'user', 'cart', 'discount', 'used', 'expires_at', 'created_at']
    list_filter = ['used']
    search_fields = ['code', 'user__email']
    raw_id_fields = ['user', 'cart']
    readonly_fields = ['created_at', 'used_at']
