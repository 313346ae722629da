from django.contrib import admin

from sponsorships.models import Sponsorship, SponsorshipBatch, SponsorshipUsage


class SponsorshipInline(admin.TabularInline):
    model = Sponsorship
    extra = 0
    fields = ["code", "beneficiary_name", "status", "total_amount"]
    readonly_fields = ["code", "total_amount"]


class SponsorshipUsageInline(admin.TabularInline):
    model = SponsorshipUsage
    extra = 0
    readonly_fields = ["registration", "amount_applied", "applied_by", "applied_at"]


@admin.register(SponsorshipBatch)
class SponsorshipBatchAdmin(admin.ModelAdmin):
    list_display = ["lab_name", "contact_name", "event", "created_at"]
    list_filter = ["event"]
    search_fields = ["lab_name", "contact_name", "email"]
    inlines = [SponsorshipInline]


@admin.register(Sponsorship)
class SponsorshipAdmin(admin.ModelAdmin):
    list_display = ["code", "beneficiary_name", "event", "status", "total_amount"]
    list_filter = ["event", "status"]
    search_fields = ["code", "beneficiary_name", "beneficiary_email"]
    readonly_fields = ["code", "total_amount"]
    inlines = [SponsorshipUsageInline]
