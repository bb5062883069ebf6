from django.contrib import admin
from .models import AddOnCategory, AddOnService, Booking, BookingAddOn, Task


class BookingAddOnInline(admin.TabularInline):
    model = BookingAddOn
    extra = 0
    raw_id_fields = ['service']


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['id', 'client', 'booking_date', 'time_range', 'hours', 'rental_display', 'status', 'is_archived']
    list_filter = ['status', 'rate_is_manual', 'is_archived', 'booking_date']
    search_fields = ['client__name', 'client__phone', 'event_type']
    readonly_fields = ['created_at', 'updated_at']
    raw_id_fields = ['client', 'lead']
    inlines = [BookingAddOnInline]

    def time_range(self, obj):
        return f"{obj.start_time}–{obj.end_time}"
    time_range.short_description = 'Time'

    def rental_display(self, obj):
        return f"{obj.rental_cost:.2f}"
    rental_display.short_description = 'Rental'


@admin.register(AddOnCategory)
class AddOnCategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'sort_order']


@admin.register(AddOnService)
class AddOnServiceAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'price', 'cost_price', 'executor_type', 'is_active']
    list_filter = ['category', 'executor_type', 'is_active']
    search_fields = ['name']


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['title', 'booking', 'client', 'due_date', 'task_type', 'is_completed']
    list_filter = ['task_type', 'is_completed', 'due_date']
    raw_id_fields = ['booking', 'client']
