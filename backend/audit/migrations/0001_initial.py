import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("complaints", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("actor_role", models.CharField(blank=True, choices=[("CITIZEN", "Citizen"), ("OFFICER", "Officer"), ("SUPERVISOR", "Supervisor"), ("ADMIN", "Admin")], db_index=True, default="", max_length=20, verbose_name="Actor Role")),
                ("action", models.CharField(choices=[("CREATE", "Create"), ("UPDATE", "Update"), ("ASSIGN_TO_SUPERVISOR", "Assign to Supervisor"), ("DIRECT_ASSIGN_TO_OFFICER", "Direct Assign to Officer"), ("REASSIGN", "Reassign"), ("ESCALATE", "Escalate"), ("AUTO_ESCALATE", "Automatic Escalation"), ("ADMIN_REOPEN", "Admin Reopen"), ("ADMIN_FORCE_RESOLVE", "Admin Force Resolve"), ("ADMIN_FORCE_REJECT", "Admin Force Reject"), ("SUBMIT", "Submit Resolution"), ("VERIFY", "Verify"), ("REJECT", "Reject"), ("ASSIGN", "Assign Officer"), ("WITHDRAW", "Withdraw"), ("USER_ACTIVATE", "User Activate"), ("USER_DEACTIVATE", "User Deactivate")], db_index=True, max_length=40, verbose_name="Action")),
                ("old_status", models.CharField(blank=True, default="", max_length=30, verbose_name="Old Status")),
                ("new_status", models.CharField(blank=True, default="", max_length=30, verbose_name="New Status")),
                ("old_escalation_level", models.PositiveIntegerField(blank=True, null=True, verbose_name="Old Escalation Level")),
                ("new_escalation_level", models.PositiveIntegerField(blank=True, null=True, verbose_name="New Escalation Level")),
                ("remarks", models.TextField(blank=True, default="", verbose_name="Remarks")),
                ("created_at", models.DateTimeField(db_index=True, verbose_name="Recorded At")),
                ("actor", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="audit_entries", to=settings.AUTH_USER_MODEL, verbose_name="Actor")),
                ("complaint", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="audit_entries", to="complaints.complaint", verbose_name="Complaint")),
                ("target_user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="audit_entries_as_target", to=settings.AUTH_USER_MODEL, verbose_name="Target User")),
            ],
            options={
                "verbose_name": "Audit Log Entry",
                "verbose_name_plural": "Audit Log Entries",
                "ordering": ["-created_at", "-id"],
            },
        ),
    ]
