import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _score():
    return models.PositiveSmallIntegerField(
        blank=True,
        null=True,
        validators=[
            django.core.validators.MinValueValidator(1),
            django.core.validators.MaxValueValidator(10),
        ],
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("action", models.CharField(max_length=255)),
                ("details", models.JSONField(blank=True, default=dict)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.CreateModel(
            name="UserRole",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("SALES_MANAGER", "Sales manager"),
                            ("RD_DEV", "R&D developer"),
                            ("RD_MANAGER", "R&D manager"),
                            ("ADMIN", "Administrator"),
                            ("READONLY", "Read only"),
                        ],
                        max_length=32,
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rd_roles",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"unique_together": {("user", "role")}},
        ),
        migrations.CreateModel(
            name="Request",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("code", models.CharField(editable=False, max_length=32, unique=True)),
                ("customer_company", models.CharField(max_length=255)),
                ("customer_contact", models.CharField(blank=True, max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "direction",
                    models.CharField(
                        choices=[
                            ("FUNCTIONAL", "Functional"),
                            ("FLAVOR", "Flavor"),
                            ("COLORANT", "Colorant"),
                            ("COMPLEX", "Complex"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "domain",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("MEAT", "Meat"),
                            ("CONFECTIONERY", "Confectionery"),
                            ("DAIRY", "Dairy"),
                            ("BAKERY", "Bakery"),
                            ("FISH", "Fish"),
                            ("FATS_OILS", "Fats and oils"),
                            ("ICE_CREAM", "Ice cream"),
                            ("SEMI_FINISHED", "Semi-finished"),
                            ("SNACKS", "Snacks"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "priority",
                    models.CharField(
                        choices=[("LOW", "Low"), ("MEDIUM", "Medium"), ("HIGH", "High")],
                        default="MEDIUM",
                        max_length=10,
                    ),
                ),
                (
                    "complexity_level",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("EASY", "Easy"),
                            ("MEDIUM", "Medium"),
                            ("COMPLEX", "Complex"),
                            ("EXPERT", "Expert"),
                        ],
                        max_length=10,
                        null=True,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("IN_PROGRESS", "In progress"),
                            ("SENT_FOR_TEST", "Sent for test"),
                            ("APPROVED_FOR_PRODUCTION", "Approved for production"),
                            ("REJECTED_BY_CLIENT", "Rejected by client"),
                            ("CANCELLED", "Cancelled"),
                        ],
                        default="PENDING",
                        editable=False,
                        max_length=32,
                    ),
                ),
                ("rd_comment", models.TextField(blank=True)),
                ("customer_feedback", models.TextField(blank=True)),
                ("final_product_name", models.CharField(blank=True, max_length=255)),
                ("desired_due_date", models.DateField(blank=True, null=True)),
                ("date_sent_for_test", models.DateField(blank=True, null=True)),
                (
                    "author",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="authored_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "responsible",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="responsible_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.CreateModel(
            name="RequestEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("CREATED", "Created"),
                            ("ASSIGNED", "Assigned"),
                            ("STATUS_CHANGED", "Status changed"),
                            ("FEEDBACK_ADDED", "Feedback added"),
                            ("FIELD_UPDATED", "Field updated"),
                            ("SENT_FOR_TEST", "Sent for test"),
                            ("PRODUCTION_SET", "Production set"),
                            ("FEEDBACK_PROVIDED", "Feedback provided"),
                        ],
                        max_length=32,
                    ),
                ),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="request_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "request",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="events",
                        to="rd_core.request",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [models.Index(fields=["request", "event_type"], name="rd_reqevent_type_idx")],
            },
        ),
        migrations.CreateModel(
            name="Recipe",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("recipe_seq", models.PositiveIntegerField(editable=False)),
                ("recipe_code", models.CharField(editable=False, max_length=40, unique=True)),
                ("name", models.CharField(blank=True, max_length=255)),
                ("notes", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("Draft", "Draft"), ("Locked", "Locked"), ("Archived", "Archived")],
                        default="Draft",
                        editable=False,
                        max_length=16,
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="rd_recipes",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "request",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="recipes",
                        to="rd_core.request",
                    ),
                ),
            ],
            options={
                "ordering": ["request_id", "recipe_seq"],
                "unique_together": {("request", "recipe_seq")},
            },
        ),
        migrations.CreateModel(
            name="RecipeIngredient",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("ingredient_name", models.CharField(max_length=255)),
                ("grams", models.DecimalField(decimal_places=3, max_digits=12)),
                ("sort_order", models.PositiveIntegerField(default=0)),
                (
                    "recipe",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ingredients",
                        to="rd_core.recipe",
                    ),
                ),
            ],
            options={"ordering": ["sort_order", "id"]},
        ),
        migrations.CreateModel(
            name="Sample",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("sample_seq", models.PositiveIntegerField(editable=False)),
                ("sample_code", models.CharField(editable=False, max_length=48, unique=True)),
                ("batch_weight_g", models.DecimalField(decimal_places=3, max_digits=12)),
                ("notes", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("Draft", "Draft"),
                            ("Prepared", "Prepared"),
                            ("Lab", "Lab"),
                            ("LabDone", "Lab done"),
                            ("Pilot", "Pilot"),
                            ("PilotDone", "Pilot done"),
                            ("ReadyForHandoff", "Ready for handoff"),
                            ("HandedOff", "Handed off"),
                            ("Testing", "Testing"),
                            ("Approved", "Approved"),
                            ("Rejected", "Rejected"),
                            ("Archived", "Archived"),
                        ],
                        default="Draft",
                        editable=False,
                        max_length=20,
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="rd_samples",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "recipe",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="samples",
                        to="rd_core.recipe",
                    ),
                ),
                (
                    "request",
                    models.ForeignKey(
                        editable=False,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="samples",
                        to="rd_core.request",
                    ),
                ),
            ],
            options={
                "ordering": ["recipe_id", "sample_seq"],
                "unique_together": {("recipe", "sample_seq")},
            },
        ),
        migrations.CreateModel(
            name="SampleIngredient",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("ingredient_name", models.CharField(max_length=255)),
                ("recipe_grams", models.DecimalField(decimal_places=3, max_digits=12)),
                ("required_grams", models.DecimalField(decimal_places=3, max_digits=12)),
                ("lot_number", models.CharField(blank=True, max_length=100)),
                ("sort_order", models.PositiveIntegerField(default=0)),
                (
                    "sample",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ingredients",
                        to="rd_core.sample",
                    ),
                ),
            ],
            options={"ordering": ["sort_order", "id"]},
        ),
        migrations.CreateModel(
            name="LabResults",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("bulk_density_g_dm3", models.DecimalField(blank=True, decimal_places=3, max_digits=10, null=True)),
                ("appearance", models.CharField(blank=True, max_length=255)),
                ("color", models.CharField(blank=True, max_length=255)),
                ("smell", models.CharField(blank=True, max_length=255)),
                ("taste", models.CharField(blank=True, max_length=255)),
                ("chlorides_pct", models.DecimalField(blank=True, decimal_places=3, max_digits=7, null=True)),
                ("phosphates_pct", models.DecimalField(blank=True, decimal_places=3, max_digits=7, null=True)),
                ("moisture_pct", models.DecimalField(blank=True, decimal_places=3, max_digits=7, null=True)),
                ("ph_value", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("hydration", models.CharField(blank=True, max_length=64)),
                ("gel_strength_g_cm3", models.DecimalField(blank=True, decimal_places=3, max_digits=10, null=True)),
                ("viscosity_cps", models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ("colority", models.CharField(blank=True, max_length=255)),
                ("additional_info", models.TextField(blank=True)),
                (
                    "sample",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lab_results",
                        to="rd_core.sample",
                    ),
                ),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="PilotResults",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("tasting_sheet_no", models.CharField(blank=True, max_length=32)),
                ("tasting_date", models.DateField(blank=True, null=True)),
                ("direction", models.CharField(blank=True, max_length=64)),
                ("tasting_goal", models.TextField(blank=True)),
                ("score_appearance", _score()),
                ("score_color", _score()),
                ("score_aroma", _score()),
                ("score_taste", _score()),
                ("score_consistency", _score()),
                ("score_juiciness", _score()),
                ("score_break_moisture", _score()),
                ("score_syneresis", _score()),
                ("score_curl_formation", _score()),
                ("score_cut_pattern", _score()),
                ("score_fibers", _score()),
                ("score_structure_density", _score()),
                ("score_air_inclusions", _score()),
                ("score_overall", _score()),
                ("comment", models.TextField(blank=True)),
                (
                    "sample",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="pilot_results",
                        to="rd_core.sample",
                    ),
                ),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="TestingSample",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("sample_code", models.CharField(max_length=48)),
                ("recipe_code", models.CharField(blank=True, max_length=40)),
                ("working_title", models.CharField(max_length=255)),
                ("display_name", models.CharField(max_length=320)),
                ("weight_g", models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ("is_quick", models.BooleanField(default=False)),
                (
                    "status",
                    models.CharField(
                        choices=[("Sent", "Sent"), ("Approved", "Approved"), ("Rejected", "Rejected")],
                        default="Sent",
                        max_length=16,
                    ),
                ),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("manager_comment", models.TextField(blank=True)),
                (
                    "request",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="testing_samples",
                        to="rd_core.request",
                    ),
                ),
                (
                    "sample",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="testing_samples",
                        to="rd_core.sample",
                    ),
                ),
                (
                    "sent_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sent_testing_samples",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "reviewed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reviewed_testing_samples",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-sent_at", "-id"]},
        ),
        migrations.CreateModel(
            name="WorkflowTransition",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "kind",
                    models.CharField(
                        choices=[("request", "Request"), ("recipe", "Recipe"), ("sample", "Sample")],
                        max_length=32,
                    ),
                ),
                ("object_id", models.PositiveIntegerField()),
                ("from_status", models.CharField(max_length=50)),
                ("to_status", models.CharField(max_length=50)),
                ("role", models.CharField(blank=True, max_length=64)),
                ("comment", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="workflow_transitions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [models.Index(fields=["kind", "object_id"], name="rd_wftransition_obj_idx")],
            },
        ),
        migrations.CreateModel(
            name="WorkflowAlert",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(max_length=32)),
                ("object_id", models.PositiveIntegerField()),
                ("state", models.CharField(max_length=32)),
                ("sla_date", models.DateTimeField()),
                ("overdue_seconds", models.PositiveIntegerField(default=0)),
                ("duration_seconds", models.PositiveIntegerField(default=0)),
                ("triggered_at", models.DateTimeField(auto_now_add=True)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ("-triggered_at",),
                "unique_together": {("kind", "object_id", "state")},
            },
        ),
    ]
