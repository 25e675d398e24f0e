from django.contrib import admin

from .models import Cart, CartItem


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    raw_id_fields = ['product', 'variant']


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'item_count', 'updated_at', 'reminder_count', 'last_reminder_at']
    list_filter = ['reminder_count', 'user__is_guest']
    search_fields = ['user__email']
    readonly_fields = ['created_at', 'updated_at', 'reminder_count', 'last_reminder_at']
    inlines = [CartItemInline]

    @admin.display(description='Líneas')
    def item_count(self, obj):
        return obj.items.count()
