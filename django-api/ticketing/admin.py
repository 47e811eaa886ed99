from django.contrib import admin

from ticketing.models import Event, Ticket


class TicketInline(admin.TabularInline):
    model = Ticket
    extra = 0
    fields = ["ticket_number", "seat_number", "status", "is_checked_in"]
    readonly_fields = fields
    can_delete = False
    show_change_link = True


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["title", "status", "starts_at", "total_seats", "available_seats", "sold_seats"]
    list_filter = ["status"]
    search_fields = ["title"]
    readonly_fields = ["available_seats", "sold_seats"]
    inlines = [TicketInline]


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ["ticket_number", "event", "seat_number", "status", "payment_status", "is_checked_in"]
    list_filter = ["status", "payment_status", "event"]
    search_fields = ["ticket_number", "attendee_name", "attendee_email"]
    readonly_fields = ["ticket_number", "credential_payload", "credential_image"]

    def has_delete_permission(self, request, obj=None):
        return False
