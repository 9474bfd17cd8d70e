from django.contrib import admin

from .models import Complaint, ComplaintComment, ComplaintStatusHistory


class ComplaintStatusHistoryInline(admin.TabularInline):
    model = ComplaintStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ("status", "changed_by", "role", "remarks", "changed_at")

    def has_add_permission(self, request, obj=None):
        return False


class ComplaintCommentInline(admin.TabularInline):
    model = ComplaintComment
    extra = 0
    readonly_fields = ("author", "text", "created_at")


@admin.register(Complaint)
class ComplaintAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "category", "status", "priority",
                    "sla_due_by", "sla_escalation_level", "created_at")
    list_filter = ("status", "priority", "category")
    search_fields = ("title", "description", "area")
    readonly_fields = ("status", "sla_assigned_at", "sla_due_by",
                       "sla_escalated_at", "sla_escalation_level")
    inlines = [ComplaintStatusHistoryInline, ComplaintCommentInline]

    def save_model(self, request, obj, form, change):
        obj.touch()
        super().save_model(request, obj, form, change)


@admin.register(ComplaintStatusHistory)
class ComplaintStatusHistoryAdmin(admin.ModelAdmin):
    list_display = ("complaint", "status", "changed_by", "role", "changed_at")
    list_filter = ("status", "role")
