from django.contrib import admin

from .models import Idea, Investment


class InvestmentInline(admin.TabularInline):
    model = Investment
    extra = 0
    can_delete = False
    readonly_fields = ['investor_address', 'amount', 'share_percentage', 'transaction_id', 'invested_at']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Idea)
class IdeaAdmin(admin.ModelAdmin):
    list_display = ['title', 'owner_address', 'money_needed', 'status', 'end_date', 'created_at']
    list_filter = ['status']
    search_fields = ['title', 'owner_address']
    inlines = [InvestmentInline]

    def has_add_permission(self, request):
        return False

    # ideas only change through the funding engine's status transitions
    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Investment)
class InvestmentAdmin(admin.ModelAdmin):
    list_display = ['transaction_id', 'idea', 'investor_address', 'amount', 'share_percentage', 'invested_at']
    search_fields = ['transaction_id', 'investor_address']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
