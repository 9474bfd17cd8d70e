import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Complaint",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("title", models.CharField(max_length=255, verbose_name="Title")),
                ("description", models.TextField(verbose_name="Description")),
                ("category", models.CharField(choices=[("Road", "Road"), ("Water", "Water"), ("Electricity", "Electricity"), ("Sanitation", "Sanitation"), ("Other", "Other")], max_length=20, verbose_name="Category")),
                ("area", models.CharField(max_length=255, verbose_name="Area")),
                ("status", models.CharField(choices=[("CREATED", "Created"), ("ASSIGNED", "Assigned"), ("IN_PROGRESS", "In Progress"), ("PENDING_VERIFICATION", "Pending Verification"), ("RESOLVED", "Resolved"), ("REJECTED", "Rejected"), ("WITHDRAWN", "Withdrawn")], db_index=True, default="CREATED", max_length=30, verbose_name="Current Status")),
                ("priority", models.CharField(choices=[("LOW", "Low"), ("MEDIUM", "Medium"), ("HIGH", "High"), ("CRITICAL", "Critical")], default="MEDIUM", max_length=10, verbose_name="Priority")),
                ("remarks", models.TextField(blank=True, default="", verbose_name="Remarks")),
                ("citizen_images", models.JSONField(blank=True, default=list, verbose_name="Citizen Images")),
                ("supervisor_image", models.CharField(blank=True, default="", max_length=500, verbose_name="Supervisor Image")),
                ("officer_image", models.CharField(blank=True, default="", max_length=500, verbose_name="Officer Image")),
                ("sla_assigned_at", models.DateTimeField(blank=True, null=True, verbose_name="SLA Assigned At")),
                ("sla_due_by", models.DateTimeField(blank=True, db_index=True, null=True, verbose_name="SLA Due By")),
                ("sla_escalated_at", models.DateTimeField(blank=True, null=True, verbose_name="Last Escalated At")),
                ("sla_escalation_level", models.PositiveIntegerField(default=0, help_text="Reset to 0 on every (re)assignment.", verbose_name="Escalation Level")),
                ("resolved_at", models.DateTimeField(blank=True, null=True, verbose_name="Resolved At")),
                ("withdrawn_at", models.DateTimeField(blank=True, null=True, verbose_name="Withdrawn At")),
                ("resolved_by_admin", models.BooleanField(default=False, verbose_name="Force-resolved by Admin")),
                ("rejected_by_admin", models.BooleanField(default=False, verbose_name="Force-rejected by Admin")),
                ("assigned_officer", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="officer_complaints", to=settings.AUTH_USER_MODEL, verbose_name="Assigned Officer")),
                ("assigned_supervisor", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="supervised_complaints", to=settings.AUTH_USER_MODEL, verbose_name="Assigned Supervisor")),
                ("reporter", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="complaints", to=settings.AUTH_USER_MODEL, verbose_name="Reporter")),
            ],
            options={
                "verbose_name": "Complaint",
                "verbose_name_plural": "Complaints",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["status", "sla_due_by"], name="complaint_status_due_idx")],
            },
        ),
        migrations.CreateModel(
            name="ComplaintStatusHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=[("CREATED", "Created"), ("ASSIGNED", "Assigned"), ("IN_PROGRESS", "In Progress"), ("PENDING_VERIFICATION", "Pending Verification"), ("RESOLVED", "Resolved"), ("REJECTED", "Rejected"), ("WITHDRAWN", "Withdrawn")], max_length=30, verbose_name="Status")),
                ("role", models.CharField(choices=[("CITIZEN", "Citizen"), ("OFFICER", "Officer"), ("SUPERVISOR", "Supervisor"), ("ADMIN", "Admin")], max_length=20, verbose_name="Acting Role")),
                ("remarks", models.TextField(blank=True, default="", verbose_name="Remarks")),
                ("changed_at", models.DateTimeField(verbose_name="Changed At")),
                ("changed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="complaint_status_changes", to=settings.AUTH_USER_MODEL, verbose_name="Changed By")),
                ("complaint", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="status_history", to="complaints.complaint", verbose_name="Complaint")),
            ],
            options={
                "verbose_name": "Complaint Status History",
                "verbose_name_plural": "Complaint Status History",
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="ComplaintComment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("text", models.TextField(verbose_name="Text")),
                ("created_at", models.DateTimeField(verbose_name="Created At")),
                ("author", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="complaint_comments", to=settings.AUTH_USER_MODEL, verbose_name="Author")),
                ("complaint", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="comments", to="complaints.complaint", verbose_name="Complaint")),
            ],
            options={
                "verbose_name": "Complaint Comment",
                "verbose_name_plural": "Complaint Comments",
                "ordering": ["id"],
            },
        ),
    ]
