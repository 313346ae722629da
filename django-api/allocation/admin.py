from django.contrib import admin

from allocation.models import AccessItem, Event, Registration, RegistrationAccess


class AccessItemInline(admin.TabularInline):
    model = AccessItem
    extra = 0
    fields = ["name", "type", "starts_at", "price", "max_capacity", "active"]


class RegistrationAccessInline(admin.TabularInline):
    model = RegistrationAccess
    extra = 0
    readonly_fields = ["status", "waitlist_position"]


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["name", "start_date", "end_date", "base_price", "currency"]
    search_fields = ["name"]
    inlines = [AccessItemInline]


@admin.register(AccessItem)
class AccessItemAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "event",
        "type",
        "starts_at",
        "max_capacity",
        "registered_count",
        "waitlist_count",
        "active",
    ]
    list_filter = ["event", "type", "active"]
    readonly_fields = ["registered_count", "waitlist_count"]
    filter_horizontal = ["required_access"]


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = ["email", "event", "total_amount", "sponsorship_amount"]
    list_filter = ["event"]
    search_fields = ["email", "first_name", "last_name"]
    readonly_fields = ["sponsorship_amount"]
    inlines = [RegistrationAccessInline]
